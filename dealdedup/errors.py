"""Exception hierarchy for the duplicate cleanup engine."""


class DedupError(Exception):
    """Base class for all engine errors."""

    retryable = False


class InvalidInputError(DedupError, ValueError):
    """Caller supplied an invalid window, article or parameter."""


class StoreError(DedupError):
    """The article store failed to list, delete or update."""


class SemanticComparisonError(DedupError):
    """The semantic comparer failed or returned unusable output."""


class RunInProgressError(DedupError):
    """Another cleanup run currently holds the run lock."""

    retryable = True
