"""
Method dispatch for the ITRC trend decision tree.

    censored  seasonal   test
    --------  --------   ----------------
    yes       yes        censeaken
    yes       no         cenken
    no        yes        seasonal_kendall
    no        no         mann_kendall

Every branch returns a MethodResult of the same shape. Estimator failures
are caught inside the branch and reported as ``success=False``; nothing in
this module raises past its callers.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Iterable, Optional

import numpy as np
import pandas as pd

from .config import DEFAULT_CONFIG, TrendConfig
from .dataset import Dataset
from .estimators import EstimatorSuite, default_estimators
from .exceptions import EstimatorFailure
from .records import MethodResult, SummaryStats, result_field, to_optional_float

logger = logging.getLogger(__name__)


class TrendMethod(str, Enum):
    CENSEAKEN = "censeaken"
    CENKEN = "cenken"
    SEASONAL_KENDALL = "seasonal_kendall"
    MANN_KENDALL = "mann_kendall"


# (is_censored, is_seasonal) -> method
DISPATCH_TABLE = {
    (True, True): TrendMethod.CENSEAKEN,
    (True, False): TrendMethod.CENKEN,
    (False, True): TrendMethod.SEASONAL_KENDALL,
    (False, False): TrendMethod.MANN_KENDALL,
}


def select_method(is_censored: bool, is_seasonal: Optional[bool]) -> TrendMethod:
    return DISPATCH_TABLE[(bool(is_censored), bool(is_seasonal))]


def normalize_time(times: Iterable[float]) -> np.ndarray:
    """Shift times so the first sample is at zero."""
    t = np.asarray(list(times), dtype=float)
    if np.isnan(t).all():
        _no_usable_time()
    return t - np.nanmin(t)


def _no_usable_time() -> None:
    raise EstimatorFailure("No observations with a usable time")


def _to_method_result(method: TrendMethod, estimate: Any) -> MethodResult:
    tau = to_optional_float(result_field(estimate, 'tau'))
    p_value = to_optional_float(result_field(estimate, 'p_value'))
    if tau is None or not -1 <= tau <= 1:
        raise EstimatorFailure(f"tau out of range: {tau}")
    if p_value is None or not 0 <= p_value <= 1:
        raise EstimatorFailure(f"p-value out of range: {p_value}")

    return MethodResult(
        method=method.value,
        tau=tau,
        p_value=p_value,
        slope=result_field(estimate, 'slope'),
        statistic=result_field(estimate, 'statistic'),
    )


def _contained(method: TrendMethod, call: Callable[[], Any]) -> MethodResult:
    """Run one estimator call, turning any failure into a failed MethodResult."""
    try:
        return _to_method_result(method, call())
    except Exception as e:
        error = f"{type(e).__name__}: {e}"
        logger.warning(f"{method.value} failed: {error}")
        return MethodResult.failed(method.value, error)


# =============================================================================
# BRANCHES
# =============================================================================

def seasonal_kendall_censored(values, censored, seasons, times,
                              estimators: Optional[EstimatorSuite] = None) -> MethodResult:
    """Seasonal Kendall test for censored data."""
    suite = default_estimators(estimators)
    return _contained(TrendMethod.CENSEAKEN,
                      lambda: suite.censored_seasonal_trend(times, values, censored, seasons))


def mann_kendall_censored(values, censored, times,
                          estimators: Optional[EstimatorSuite] = None) -> MethodResult:
    """Mann-Kendall equivalent test for censored data."""
    suite = default_estimators(estimators)
    return _contained(TrendMethod.CENKEN,
                      lambda: suite.censored_trend(values, censored, times))


def seasonal_kendall_uncensored(values, seasons, times,
                                estimators: Optional[EstimatorSuite] = None) -> MethodResult:
    """Seasonal Kendall trend test on value ~ season + normalized time."""
    suite = default_estimators(estimators)
    return _contained(TrendMethod.SEASONAL_KENDALL,
                      lambda: suite.uncensored_seasonal_trend(values, seasons, normalize_time(times)))


def mann_kendall_uncensored(values, times,
                            estimators: Optional[EstimatorSuite] = None) -> MethodResult:
    """Mann-Kendall trend test on value ~ normalized time."""
    suite = default_estimators(estimators)
    return _contained(TrendMethod.MANN_KENDALL,
                      lambda: suite.uncensored_trend(values, normalize_time(times)))


def _columns(frame: pd.DataFrame) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    return (frame['value'].to_numpy(dtype=float),
            frame['is_censored'].to_numpy(dtype=bool),
            frame['season'].to_numpy(dtype=object),
            frame['time'].to_numpy(dtype=float))


# Branch signature: (values, censored, seasons, times, suite)
BRANCHES: dict[TrendMethod, Callable[..., MethodResult]] = {
    TrendMethod.CENSEAKEN: lambda x, c, s, t, suite: seasonal_kendall_censored(x, c, s, t, suite),
    TrendMethod.CENKEN: lambda x, c, s, t, suite: mann_kendall_censored(x, c, t, suite),
    TrendMethod.SEASONAL_KENDALL: lambda x, c, s, t, suite: seasonal_kendall_uncensored(x, s, t, suite),
    TrendMethod.MANN_KENDALL: lambda x, c, s, t, suite: mann_kendall_uncensored(x, t, suite),
}


def run_trend_test(dataset: Dataset,
                   is_seasonal: Optional[bool],
                   estimators: Optional[EstimatorSuite] = None) -> MethodResult:
    """Select and run the trend test for a dataset; never raises."""
    suite = default_estimators(estimators)
    is_censored = dataset.is_censored
    method = select_method(is_censored, is_seasonal)
    logger.debug(f"{dataset.label}: censored={is_censored}, "
                 f"seasonal={bool(is_seasonal)} -> {method.value}")

    frame = dataset.trend_frame()
    if frame.empty:
        return _contained(method, _no_usable_time)
    return BRANCHES[method](*_columns(frame), suite)


# =============================================================================
# SUMMARY STATISTICS
# =============================================================================

def censored_summary_stats(values: Iterable[float],
                           censored: Iterable[bool],
                           config: TrendConfig = DEFAULT_CONFIG,
                           estimators: Optional[EstimatorSuite] = None) -> SummaryStats:
    """
    Median and outer percentiles for censored data.

    Uses a robust ROS fit; if that fails, falls back to empirical quantiles of
    the detected values only and reports ``success=False``.
    """
    suite = default_estimators(estimators)
    x = np.asarray(list(values), dtype=float)
    c = np.asarray(list(censored), dtype=bool)
    probs = list(config.quantiles)

    try:
        fit = suite.censored_quantile_fit(x, c)
        q = np.asarray(fit.quantile(probs), dtype=float)
        if q.shape != (3,) or np.isnan(q).any():
            raise EstimatorFailure(f"ROS fit returned unusable quantiles: {q}")
        if not q[0] <= q[1] <= q[2]:
            raise EstimatorFailure(f"ROS fit returned unordered quantiles: {q}")
        return SummaryStats(method='cenros', median=q[1],
                            percentile_5th=q[0], percentile_95th=q[2])
    except Exception as e:
        error = f"{type(e).__name__}: {e}"
        logger.warning(f"cenros failed, using detected-value quantiles: {error}")

        detected = x[~c & ~np.isnan(x)]
        q = np.quantile(detected, probs) if detected.size else [None, None, None]
        return SummaryStats(method='detected_quantiles', median=q[1],
                            percentile_5th=q[0], percentile_95th=q[2],
                            success=False, error=error)
