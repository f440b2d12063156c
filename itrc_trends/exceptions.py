"""Error taxonomy for the trend workflow."""

from __future__ import annotations


class TrendAnalysisError(Exception):
    """Base error for all trend-analysis exceptions."""


# ---- Construction errors ----
class InvalidConfig(TrendAnalysisError, ValueError):
    """Raised when a TrendConfig is built with out-of-range thresholds."""


class InvalidObservation(TrendAnalysisError, ValueError):
    """Raised when an Observation violates the censoring invariants."""


class InvalidDataset(TrendAnalysisError, ValueError):
    """Raised when a Dataset is empty or missing required columns."""


class InvalidResult(TrendAnalysisError, ValueError):
    """Raised when a result record is built with inconsistent success/error fields."""


# ---- Workflow errors ----
class ParseFailure(TrendAnalysisError, ValueError):
    """Raised when a single value token or timestamp cannot be parsed."""


ParseError = ParseFailure


class PreconditionViolation(TrendAnalysisError, ValueError):
    """Raised when a component is called on data it is not defined for."""


class EstimatorFailure(TrendAnalysisError):
    """Raised by an estimator that cannot produce a result for its input."""
