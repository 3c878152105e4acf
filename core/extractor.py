"""
ForEx++ extraction pipeline.

Takes the dump of a trained forest, extracts every rule, selects the high-quality
ones per class and keeps the result for reporting.

Pipeline:
    1. Precondition checks (model kind, dataset, criteria, verbose dump); a failing
       check sets a BuildStatus and skips the rest
    2. Dump parsing (parsing.dump_parser)
    3. Zero-accuracy pruning and per-class selection (core.selection)
    4. Report rendering (core.reporting)

Classes:
    - BuildStatus: outcome of the last build
    - ForExConfig: selection and display settings
    - ForExExtractor: runs the pipeline and holds its results
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union
import logging
import pandas as pd

from core.models import ClassAttribute, RuleCollection
from core.reporting import SortMode, render_report, render_status
from core.selection import MIN_POSITIVE_ACCURACY, SelectionConfig, SelectionResult, select_rules
from parsing.dump_parser import extract_rules
from parsing.grammars import GRAMMARS, ModelKind

default_logger = logging.getLogger(__name__)


class BuildStatus(str, Enum):
    """Outcome of ForExExtractor.build()."""
    UNBUILT = "unbuilt"
    BUILT = "built"
    UNSUPPORTED_MODEL = "unsupported_model"
    TRIVIAL_DATASET = "trivial_dataset"
    NO_CRITERIA = "no_criteria"
    INCOMPATIBLE_SOURCE_MODEL = "incompatible_source_model"


@dataclass
class ForExConfig:
    """
    Settings of one ForEx++ run.

    Attributes:
        use_accuracy: Select by accuracy (at least the class mean)
        use_coverage: Select by coverage (at least the class mean)
        use_length: Select by rule length (at most the class mean)
        prune_zero_coverage: Remove zero-accuracy rules before computing means
        prune_floor: Accuracy below which rules are pruned
        group_by_class: Group the report by class value
        sort_mode: Order of rules in the report (SortMode or "acc" / "cov" / "len")
        print_source_dump: Append the forest dump to the report
    """
    use_accuracy: bool = True
    use_coverage: bool = True
    use_length: bool = True
    prune_zero_coverage: bool = True
    prune_floor: float = MIN_POSITIVE_ACCURACY
    group_by_class: bool = True
    sort_mode: SortMode = SortMode.ACCURACY
    print_source_dump: bool = False

    def __post_init__(self):
        if isinstance(self.sort_mode, str):
            try:
                self.sort_mode = SortMode(self.sort_mode)
            except ValueError:
                raise ValueError(f"Invalid sort method: {self.sort_mode!r} (expected acc, cov or len)")

        if not 0.0 <= self.prune_floor <= 1.0:
            raise ValueError(f"prune_floor must be in range [0.0, 1.0], got: {self.prune_floor}")

    def selection_config(self) -> SelectionConfig:
        """Selection part of the configuration."""
        return SelectionConfig(
            use_accuracy=self.use_accuracy,
            use_coverage=self.use_coverage,
            use_length=self.use_length,
            prune_zero_coverage=self.prune_zero_coverage,
            prune_floor=self.prune_floor,
        )


class ForExExtractor:
    """
    Runs ForEx++ on a forest dump.

    Example:
        >>> extractor = ForExExtractor(ForExConfig(sort_mode="cov"))
        >>> status = extractor.build("sysfor", dump_text, total_records=14,
        ...                          class_attribute=ClassAttribute(["no", "yes"]),
        ...                          num_attributes=5)
        >>> print(extractor.report())
    """

    def __init__(self, config: Optional[ForExConfig] = None, logger: Optional[logging.Logger] = None,
                 run_id: Optional[str] = None):
        """
        Args:
            config: Run settings (defaults to ForExConfig())
            logger: Dedicated logger (optional), e.g. from setup_logger(run_id)
            run_id: Fixed run identifier, so saved runs find the files of
                setup_logger(run_id); a timestamped id is generated per build otherwise
        """
        self.config = config if config is not None else ForExConfig()
        self.logger = logger if logger else default_logger
        self._fixed_run_id = run_id
        self._reset()

    def _reset(self):
        self.status = BuildStatus.UNBUILT
        self.run_id: Optional[str] = None
        self.model_kind: Optional[ModelKind] = None
        self.class_attribute: Optional[ClassAttribute] = None
        self.source_dump: Optional[str] = None
        self.extracted_rules: Optional[RuleCollection] = None
        self.final_rules: Optional[RuleCollection] = None
        self.selection: Optional[SelectionResult] = None
        self.total_rules_found = 0
        self.skipped_leaves = 0

    @property
    def is_built(self) -> bool:
        return self.status == BuildStatus.BUILT

    @property
    def source_name(self) -> str:
        if self.model_kind is None:
            return "unknown"
        return GRAMMARS[self.model_kind].name

    def _check_preconditions(self, model_kind, num_attributes: int, verbose_dump: bool) -> BuildStatus:
        # Later checks overwrite earlier ones.
        status = BuildStatus.UNBUILT

        try:
            self.model_kind = ModelKind.from_identifier(model_kind)
        except ValueError:
            self.model_kind = None
            status = BuildStatus.UNSUPPORTED_MODEL

        if num_attributes < 2:
            status = BuildStatus.TRIVIAL_DATASET

        if not self.config.selection_config().has_criteria():
            status = BuildStatus.NO_CRITERIA

        if self.model_kind == ModelKind.RANDOM_FOREST and not verbose_dump:
            status = BuildStatus.INCOMPATIBLE_SOURCE_MODEL

        return status

    def build(
        self,
        model_kind: Union[ModelKind, str],
        dump_text: str,
        total_records: int,
        class_attribute: ClassAttribute,
        num_attributes: int,
        verbose_dump: bool = True
    ) -> BuildStatus:
        """
        Extracts and selects the ForEx++ rules of a forest dump.

        Args:
            model_kind: Forest implementation that produced the dump
            dump_text: Textual dump of the forest
            total_records: Number of training records
            class_attribute: Class enumeration of the training data
            num_attributes: Number of attributes in the training data, class included
            verbose_dump: Whether the forest printed its individual trees
                (required for RandomForest)

        Returns:
            Resulting BuildStatus (also stored in self.status)
        """
        self._reset()
        self.run_id = self._fixed_run_id or self._generate_run_id()
        self.class_attribute = class_attribute

        status = self._check_preconditions(model_kind, num_attributes, verbose_dump)
        if status != BuildStatus.UNBUILT:
            self.status = status
            self.logger.warning(f"[FOREX] Build skipped ({status.value}): {render_status(status).splitlines()[-1]}")
            return status

        self.logger.info(f"[FOREX] Run {self.run_id}: extracting {self.source_name} rules "
                         f"({total_records} records, {class_attribute.num_values()} classes)")

        parsed = extract_rules(self.model_kind, dump_text, total_records, class_attribute, logger=self.logger)

        self.source_dump = dump_text
        self.extracted_rules = parsed.rules
        self.total_rules_found = len(parsed.rules)
        self.skipped_leaves = parsed.skipped_leaves

        self.selection = select_rules(parsed.rules, class_attribute, self.config.selection_config(), logger=self.logger)
        self.final_rules = self.selection.rules
        self.status = BuildStatus.BUILT

        self.logger.info(f"[FOREX] {self.total_rules_found} rules found, {len(self.final_rules)} selected, "
                         f"{self.skipped_leaves} leaves skipped")
        return self.status

    def build_from_dataframe(
        self,
        df: pd.DataFrame,
        decision_column: str,
        model_kind: Union[ModelKind, str],
        dump_text: str,
        verbose_dump: bool = True
    ) -> BuildStatus:
        """
        Same as build(), with record count, attribute count and classes taken from the training data.

        Args:
            df: Training data the forest was built on
            decision_column: Name of the class column

        Raises:
            ValueError: When df is empty or decision_column is missing
        """
        if df.empty:
            raise ValueError("DataFrame is empty")
        if decision_column not in df.columns:
            raise ValueError(f"Decision column '{decision_column}' does not exist in DataFrame")

        return self.build(
            model_kind=model_kind,
            dump_text=dump_text,
            total_records=len(df),
            class_attribute=ClassAttribute.from_series(df[decision_column]),
            num_attributes=df.shape[1],
            verbose_dump=verbose_dump,
        )

    def report(self) -> str:
        """
        Rendered ForEx++ rules, or the reason the build was skipped.
        """
        if not self.is_built:
            return render_status(self.status)

        return render_report(
            self.final_rules,
            total_found=self.total_rules_found,
            source_name=self.source_name,
            sort_mode=self.config.sort_mode,
            group_by_class=self.config.group_by_class,
            class_attribute=self.class_attribute,
            source_dump=self.source_dump if self.config.print_source_dump else None,
        )

    def _generate_run_id(self) -> str:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return f"run_{timestamp}"
