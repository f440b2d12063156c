"""
Record types exchanged between the workflow components.

Result records are frozen and serialize with stable field names through
``to_dict()``; downstream reporting keys on those names.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace
from datetime import datetime
from typing import Any, Mapping, Optional

import numpy as np

from .exceptions import InvalidObservation, InvalidResult

SEASONS = ("Under ice", "High flow", "Open water")


def to_optional_float(value: Any) -> Optional[float]:
    """Convert numpy scalars to float and NaN/None to None."""
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(value) else value


def result_field(result: Any, name: str) -> Any:
    """Read ``name`` from an estimator result that may be a mapping or an object."""
    if isinstance(result, Mapping):
        return result.get(name)
    return getattr(result, name, None)


def _same_number(a: Optional[float], b: Optional[float]) -> bool:
    if a is None or b is None:
        return a is None and b is None
    if math.isnan(a) and math.isnan(b):
        return True
    return a == b


# =============================================================================
# INPUTS
# =============================================================================

@dataclass(frozen=True)
class Observation:
    """One laboratory measurement for a parameter at a station."""

    value: float
    is_censored: bool = False
    detection_limit: Optional[float] = None
    timestamp: Optional[datetime] = None
    season: Optional[str] = None
    group: Optional[str] = None

    def __post_init__(self) -> None:
        if self.season is not None and self.season not in SEASONS:
            raise InvalidObservation(f"Unknown season label: {self.season!r}")
        if not self.is_censored and self.detection_limit is not None:
            raise InvalidObservation("Detected observations carry no detection limit.")
        if self.is_censored and not _same_number(self.value, self.detection_limit):
            raise InvalidObservation(
                f"Censored value {self.value} must equal its detection limit {self.detection_limit}."
            )


# =============================================================================
# CLASSIFICATION
# =============================================================================

@dataclass(frozen=True)
class GateCheck:
    """Outcome of one suitability check; failing checks annotate, never raise."""

    name: str
    valid: bool
    message: str
    value: Optional[float] = None
    threshold: Optional[float] = None


@dataclass(frozen=True)
class ClassificationResult:
    sample_size: int
    censoring_pct: float
    has_multiple_detection_limits: bool
    suitability: GateCheck
    sample_size_check: GateCheck
    censoring_check: GateCheck
    is_seasonal: Optional[bool] = None

    @property
    def is_suitable(self) -> bool:
        return self.suitability.valid

    def with_seasonality(self, is_seasonal: Optional[bool]) -> "ClassificationResult":
        return replace(self, is_seasonal=is_seasonal)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SeasonalityResult:
    """Seasonality decision plus the group-difference test behind it."""

    method: str
    is_seasonal: bool
    n_seasons: int
    statistic: Optional[float] = None
    p_value: Optional[float] = None
    success: bool = True
    error: Optional[str] = None

    def __post_init__(self) -> None:
        _check_success_error(self.success, self.error)
        object.__setattr__(self, "statistic", to_optional_float(self.statistic))
        object.__setattr__(self, "p_value", to_optional_float(self.p_value))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, eq=False)
class RecensorResult:
    """Observations raised to a single conservative detection limit."""

    values: np.ndarray
    censored: np.ndarray
    detection_limit: np.ndarray
    max_dl_used: float


# =============================================================================
# RESULTS
# =============================================================================

def _check_success_error(success: bool, error: Optional[str]) -> None:
    if success and error is not None:
        raise InvalidResult("A successful result cannot carry an error.")
    if not success and not error:
        raise InvalidResult("A failed result must carry its error detail.")


@dataclass(frozen=True)
class MethodResult:
    """Uniform output of every trend-test branch."""

    method: str
    tau: Optional[float] = None
    p_value: Optional[float] = None
    slope: Optional[float] = None
    statistic: Optional[float] = None
    success: bool = True
    error: Optional[str] = None

    def __post_init__(self) -> None:
        _check_success_error(self.success, self.error)
        for name in ("tau", "p_value", "slope", "statistic"):
            object.__setattr__(self, name, to_optional_float(getattr(self, name)))

    @classmethod
    def failed(cls, method: str, error: str) -> "MethodResult":
        return cls(method=method, success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SummaryStats:
    """Median and outer percentiles for a censored sample."""

    method: str
    median: Optional[float]
    percentile_5th: Optional[float]
    percentile_95th: Optional[float]
    success: bool = True
    error: Optional[str] = None

    def __post_init__(self) -> None:
        _check_success_error(self.success, self.error)
        for name in ("median", "percentile_5th", "percentile_95th"):
            object.__setattr__(self, name, to_optional_float(getattr(self, name)))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TrendEstimate:
    """What a trend estimator hands back to the dispatcher."""

    tau: float
    p_value: float
    slope: Optional[float] = None
    statistic: Optional[float] = None


@dataclass(frozen=True)
class GroupDifference:
    """What a group-difference estimator hands back to the seasonality classifier."""

    statistic: float
    p_value: float
