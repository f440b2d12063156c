"""
Seasonality classification.

Season is only used as a blocking factor (Seasonal Kendall) when the season
groups actually differ: a Peto-Peto style test for censored data, or a
Kruskal-Wallis test otherwise, rejected at ``alpha``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional

import numpy as np

from .config import DEFAULT_CONFIG, TrendConfig
from .dataset import Dataset
from .estimators import EstimatorSuite, default_estimators
from .exceptions import EstimatorFailure, PreconditionViolation
from .records import SeasonalityResult, result_field, to_optional_float

logger = logging.getLogger(__name__)

CENSORED_METHOD = "cendiff"
UNCENSORED_METHOD = "Kruskal-Wallis"
SKIPPED_METHOD = "none"


def _distinct_groups(groups: Iterable[Any]) -> list:
    return sorted({g for g in groups if g is not None and g == g}, key=str)


def _require_groups(groups: np.ndarray, config: TrendConfig) -> int:
    n_groups = len(_distinct_groups(groups))
    if n_groups < config.min_seasons:
        raise PreconditionViolation(
            f"Group difference test needs at least {config.min_seasons} groups, got {n_groups}"
        )
    return n_groups


def _run_group_test(method: str, n_groups: int, config: TrendConfig,
                    call: Callable[[], Any]) -> SeasonalityResult:
    try:
        result = call()
        statistic = to_optional_float(result_field(result, 'statistic'))
        p_value = to_optional_float(result_field(result, 'p_value'))
        if p_value is None or not 0 <= p_value <= 1:
            raise EstimatorFailure(f"{method} returned an invalid p-value: {p_value}")
    except Exception as e:
        error = f"{type(e).__name__}: {e}"
        logger.warning(f"{method} seasonality test failed, treating as not seasonal: {error}")
        return SeasonalityResult(method=method, is_seasonal=False, n_seasons=n_groups,
                                 success=False, error=error)

    return SeasonalityResult(
        method=method,
        is_seasonal=p_value < config.alpha,
        n_seasons=n_groups,
        statistic=statistic,
        p_value=p_value,
    )


def seasonal_differences_censored(values: Iterable[float],
                                  censored: Iterable[bool],
                                  groups: Iterable[Any],
                                  config: TrendConfig = DEFAULT_CONFIG,
                                  estimators: Optional[EstimatorSuite] = None) -> SeasonalityResult:
    """Test whether censored data differ between groups (e.g. seasons)."""
    groups = np.asarray(list(groups), dtype=object)
    n_groups = _require_groups(groups, config)
    suite = default_estimators(estimators)
    values = np.asarray(list(values), dtype=float)
    censored = np.asarray(list(censored), dtype=bool)
    return _run_group_test(CENSORED_METHOD, n_groups, config,
                           lambda: suite.censored_group_difference(values, censored, groups))


def kruskal_wallis_test(values: Iterable[float],
                        groups: Iterable[Any],
                        config: TrendConfig = DEFAULT_CONFIG,
                        estimators: Optional[EstimatorSuite] = None) -> SeasonalityResult:
    """Kruskal-Wallis test for seasonality in uncensored data."""
    groups = np.asarray(list(groups), dtype=object)
    n_groups = _require_groups(groups, config)
    suite = default_estimators(estimators)
    values = np.asarray(list(values), dtype=float)
    return _run_group_test(UNCENSORED_METHOD, n_groups, config,
                           lambda: suite.rank_group_difference(values, groups))


def classify_seasonality(dataset: Dataset,
                         config: TrendConfig = DEFAULT_CONFIG,
                         estimators: Optional[EstimatorSuite] = None) -> SeasonalityResult:
    """Decide whether season is a meaningful grouping for this dataset."""
    frame = dataset.trend_frame()
    frame = frame[frame['season'].notna()]
    n_seasons = len(_distinct_groups(frame['season']))

    if n_seasons < config.min_seasons:
        logger.debug(f"{dataset.label}: {n_seasons} season(s) present, skipping seasonality test")
        return SeasonalityResult(method=SKIPPED_METHOD, is_seasonal=False, n_seasons=n_seasons)

    if dataset.is_censored:
        result = seasonal_differences_censored(frame['value'], frame['is_censored'],
                                               frame['season'], config, estimators)
    else:
        result = kruskal_wallis_test(frame['value'], frame['season'], config, estimators)

    logger.debug(
        f"{dataset.label}: {result.method} p = {result.p_value} -> "
        f"{'seasonal' if result.is_seasonal else 'not seasonal'}"
    )
    return result
