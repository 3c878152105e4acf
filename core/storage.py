"""
Rule Set Storage - writes the results of ForEx++ runs to disk.

Layout:
    forex_runs/
        {run_id}_{dataset_name}_{model_kind}/
            metadata.json               # Configuration + counts
            rules.txt                   # Rendered report
            rules.csv                   # Final rules, one row per rule
            forex_{run_id}.log          # Standard log (if present)
            forex_{run_id}_extended.log # Extended log (if present)
"""

import json
import logging
import shutil
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from core.extractor import ForExExtractor

logger = logging.getLogger(__name__)


class RuleSetStorage:
    """
    Storage layer for ForEx++ runs.

    Example:
        >>> storage = RuleSetStorage(base_dir="forex_runs")
        >>> storage.save_run(extractor, dataset_name="weather")
        PosixPath('forex_runs/run_20240115_123045_weather_sysfor')
    """

    def __init__(self, base_dir: str = "forex_runs", logs_dir: str = "logs"):
        """
        Args:
            base_dir: Base directory for saved runs
            logs_dir: Directory where setup_logger writes the log files
        """
        self.base_dir = Path(base_dir)
        self.logs_dir = Path(logs_dir)
        self.logger = logging.getLogger(f"{__name__}.RuleSetStorage")

        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.logger.info(f"RuleSetStorage initialized. Base directory: {self.base_dir}")

    def save_run(self, extractor: ForExExtractor, dataset_name: str) -> Path:
        """
        Saves the last build of an extractor.

        Args:
            extractor: Extractor after build() returned BuildStatus.BUILT
            dataset_name: Name of the training dataset

        Returns:
            Path of the run directory

        Raises:
            ValueError: When dataset_name is empty or the extractor is not built
        """
        if not dataset_name:
            raise ValueError("dataset_name cannot be empty")
        if not extractor.is_built:
            raise ValueError(f"Cannot save an extractor with status '{extractor.status.value}'")

        run_dir = self._create_run_directory(extractor.run_id, dataset_name, extractor.model_kind.value)

        self._save_metadata(run_dir, extractor, dataset_name)
        self._save_rules(run_dir, extractor)
        self._copy_logs(run_dir, extractor.run_id)

        self.logger.info(f"[STORAGE] Run saved: {run_dir}")
        return run_dir

    def _create_run_directory(self, run_id: str, dataset_name: str, model_kind: str) -> Path:
        dir_name = f"{run_id}_{self._sanitize_filename(dataset_name)}_{model_kind}"
        run_dir = self.base_dir / dir_name
        run_dir.mkdir(parents=True, exist_ok=True)

        self.logger.info(f"[STORAGE] Created directory: {run_dir}")
        return run_dir

    def _save_metadata(self, run_dir: Path, extractor: ForExExtractor, dataset_name: str):
        """
        Writes metadata.json.

        Structure:
            - run_id, timestamp, dataset_name, model_kind
            - counts: rules_found, rules_selected, skipped_leaves, pruned_rules, per_class
            - config: ForExConfig as a dict
        """
        config_dict = asdict(extractor.config)
        config_dict["sort_mode"] = extractor.config.sort_mode.value

        per_class = {
            extractor.class_attribute.values[index]: len(rules)
            for index, rules in extractor.selection.per_class.items()
        }

        metadata = {
            "run_id": extractor.run_id,
            "timestamp": datetime.now().isoformat(),
            "dataset_name": dataset_name,
            "model_kind": extractor.model_kind.value,
            "counts": {
                "rules_found": extractor.total_rules_found,
                "rules_selected": len(extractor.final_rules),
                "skipped_leaves": extractor.skipped_leaves,
                "pruned_rules": extractor.selection.pruned,
                "per_class": per_class,
            },
            "config": config_dict,
        }

        metadata_path = run_dir / "metadata.json"
        with open(metadata_path, 'w', encoding='utf-8') as f:
            json.dump(metadata, f, indent=2, ensure_ascii=False)

        self.logger.info(f"[STORAGE] Saved metadata.json ({metadata_path.stat().st_size} bytes)")

    def _save_rules(self, run_dir: Path, extractor: ForExExtractor):
        rules_path = run_dir / "rules.txt"
        with open(rules_path, 'w', encoding='utf-8') as f:
            f.write(extractor.report())

        csv_path = run_dir / "rules.csv"
        extractor.final_rules.to_dataframe().to_csv(csv_path, index=False)

        self.logger.info(f"[STORAGE] Saved {len(extractor.final_rules)} rules to rules.txt and rules.csv")

    def _copy_logs(self, run_dir: Path, run_id: str):
        """
        Copies the run's log files from logs_dir. Missing logs only produce a warning.
        """
        log_files = [
            f"forex_{run_id}.log",
            f"forex_{run_id}_extended.log"
        ]

        copied_count = 0
        for log_file in log_files:
            source_path = self.logs_dir / log_file
            if not source_path.exists():
                self.logger.warning(f"[STORAGE] Log file does not exist: {source_path}")
                continue
            try:
                shutil.copy2(source_path, run_dir / log_file)
                copied_count += 1
            except OSError as e:
                self.logger.warning(f"[STORAGE] Failed to copy {log_file}: {e}")

        self.logger.info(f"[STORAGE] Copied {copied_count}/{len(log_files)} log files")

    @staticmethod
    def _sanitize_filename(filename: str) -> str:
        invalid_chars = '<>:"/\\|?*'
        for char in invalid_chars:
            filename = filename.replace(char, '_')
        return filename.strip()

    def load_run_metadata(self, run_dir: Path) -> Optional[Dict]:
        """
        Reads metadata.json of a saved run.

        Returns:
            Metadata dict, or None if it is missing or unreadable
        """
        metadata_path = Path(run_dir) / "metadata.json"

        if not metadata_path.exists():
            self.logger.error(f"[STORAGE] No metadata.json in {run_dir}")
            return None

        try:
            with open(metadata_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.error(f"[STORAGE] Error loading metadata: {e}")
            return None

    def list_runs(self) -> List[Path]:
        """Saved run directories, newest first."""
        if not self.base_dir.exists():
            return []

        runs = [d for d in self.base_dir.iterdir() if d.is_dir()]
        runs.sort(key=lambda x: x.stat().st_mtime, reverse=True)
        return runs
