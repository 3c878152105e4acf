"""
Exceptions raised by the extraction and selection engine.

The pipeline (core.extractor) checks the same conditions before it parses or
selects and reports them as BuildStatus values, so a caller of
ForExExtractor.report() never sees them.
"""


class ForExError(Exception):
    """Base class for all errors raised by this package."""


class UnsupportedModelError(ForExError):
    """The model kind does not map to any known dump grammar."""

    def __init__(self, model_kind):
        self.model_kind = model_kind
        super().__init__(f"Unsupported model kind: {model_kind!r}")


class NoCriteriaSelectedError(ForExError):
    """Accuracy, coverage and length selection are all disabled."""


class EmptyRuleCollectionError(ForExError):
    """A statistic was requested from a collection with no rules."""
