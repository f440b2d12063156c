"""
Default statistical estimators for censored and uncensored trend work.

The workflow treats these as black boxes behind ``EstimatorSuite``: every
callable takes plain vectors and returns a ``TrendEstimate``,
``GroupDifference`` or a fitted distribution, or raises. Swap any of them
with ``dataclasses.replace(default_estimators(), ...)``.

Censored comparisons follow the usual left-censoring rules: a non-detect at
DL is only known to be below DL, so a pair is ranked only when the ordering
is certain (detected value above the other's DL); every other pair involving
a non-detect is treated as a tie.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

import numpy as np
from scipy import stats

from .exceptions import EstimatorFailure
from .records import GroupDifference, TrendEstimate


# =============================================================================
# SHARED KENDALL MACHINERY
# =============================================================================

def _as_float(x: Iterable[Any]) -> np.ndarray:
    return np.asarray(list(x), dtype=float)


def _as_bool(x: Iterable[Any]) -> np.ndarray:
    return np.asarray(list(x), dtype=bool)


def _pair_signs(values: np.ndarray, censored: np.ndarray) -> np.ndarray:
    """Matrix [i, j] = sign(x_j - x_i) where the ordering is certain, else 0."""
    dx = values[None, :] - values[:, None]
    sign = np.sign(dx)
    ci = censored[:, None]
    cj = censored[None, :]

    sign = np.where(ci & cj, 0.0, sign)
    sign = np.where(ci & ~cj, np.where(dx > 0, 1.0, 0.0), sign)
    sign = np.where(~ci & cj, np.where(dx < 0, -1.0, 0.0), sign)
    return sign


def _kendall_score(times: np.ndarray, values: np.ndarray,
                   censored: np.ndarray) -> tuple[float, float, float]:
    """Mann-Kendall S, number of pairs and tie-corrected variance of S."""
    n = len(values)
    if n < 2:
        raise EstimatorFailure(f"Kendall score needs at least 2 observations, got {n}")

    sign = _pair_signs(values, censored)
    time_sign = np.sign(times[None, :] - times[:, None])
    upper = np.triu(np.ones((n, n), dtype=bool), k=1)
    s = float((sign * time_sign)[upper].sum())

    _, tie_counts = np.unique(values, return_counts=True)
    ties = tie_counts[tie_counts > 1]
    var_s = (n * (n - 1) * (2 * n + 5) - np.sum(ties * (ties - 1) * (2 * ties + 5))) / 18.0

    return s, n * (n - 1) / 2.0, float(var_s)


def _normal_p_value(s: float, var_s: float) -> float:
    """Two-sided p-value for S with continuity correction."""
    if var_s <= 0:
        raise EstimatorFailure("Variance of the Kendall score is zero")

    if s > 0:
        z = (s - 1) / np.sqrt(var_s)
    elif s < 0:
        z = (s + 1) / np.sqrt(var_s)
    else:
        z = 0.0
    return float(2 * stats.norm.sf(abs(z)))


def _pairwise_slopes(times: np.ndarray, values: np.ndarray, censored: np.ndarray) -> np.ndarray:
    """Slopes of every pair whose ordering is unambiguous; ambiguous pairs dropped."""
    n = len(values)
    sign = _pair_signs(values, censored)
    dx = values[None, :] - values[:, None]
    dt = times[None, :] - times[:, None]
    ci = censored[:, None]
    cj = censored[None, :]

    upper = np.triu(np.ones((n, n), dtype=bool), k=1)
    both_detected = ~ci & ~cj
    usable = upper & (dt != 0) & (both_detected | ((sign != 0) & ~(ci & cj)))
    return dx[usable] / dt[usable]


def _median_or_nan(slopes: np.ndarray) -> float:
    return float(np.median(slopes)) if slopes.size else float('nan')


def _seasonal_score(times: np.ndarray, values: np.ndarray, censored: np.ndarray,
                    seasons: np.ndarray) -> TrendEstimate:
    """Seasonal Kendall: S and var(S) summed over seasons, slope pooled within seasons."""
    s_total = pairs_total = var_total = 0.0
    slopes = []
    for season in _distinct(seasons):
        mask = seasons == season
        if mask.sum() < 2:
            continue
        s, pairs, var_s = _kendall_score(times[mask], values[mask], censored[mask])
        s_total += s
        pairs_total += pairs
        var_total += var_s
        slopes.append(_pairwise_slopes(times[mask], values[mask], censored[mask]))

    if pairs_total == 0:
        raise EstimatorFailure("No season holds at least 2 observations")

    slope = _median_or_nan(np.concatenate(slopes))
    return TrendEstimate(
        tau=s_total / pairs_total,
        p_value=_normal_p_value(s_total, var_total),
        slope=slope,
        statistic=s_total,
    )


def _distinct(labels: np.ndarray) -> list:
    return sorted({label for label in labels if label is not None and label == label}, key=str)


def _require_detects(censored: np.ndarray) -> None:
    if censored.all():
        raise EstimatorFailure("All observations are censored; no trend can be estimated")


# =============================================================================
# TREND ESTIMATORS
# =============================================================================

def censored_seasonal_trend(times, values, censor_flags, seasons) -> TrendEstimate:
    """Seasonal Kendall test for censored data (censeaken equivalent)."""
    t, x, c = _as_float(times), _as_float(values), _as_bool(censor_flags)
    _require_detects(c)
    return _seasonal_score(t, x, c, np.asarray(list(seasons), dtype=object))


def censored_trend(values, censor_flags, times) -> TrendEstimate:
    """Kendall test for censored data with an unambiguous-pair Theil-Sen slope (cenken equivalent)."""
    x, c, t = _as_float(values), _as_bool(censor_flags), _as_float(times)
    _require_detects(c)
    s, pairs, var_s = _kendall_score(t, x, c)
    return TrendEstimate(
        tau=s / pairs,
        p_value=_normal_p_value(s, var_s),
        slope=_median_or_nan(_pairwise_slopes(t, x, c)),
        statistic=s,
    )


def uncensored_seasonal_trend(values, seasons, normalized_times) -> TrendEstimate:
    """Seasonal Kendall trend test with a pooled within-season Sen slope."""
    x, t = _as_float(values), _as_float(normalized_times)
    return _seasonal_score(t, x, np.zeros(len(x), dtype=bool),
                           np.asarray(list(seasons), dtype=object))


def uncensored_trend(values, normalized_times) -> TrendEstimate:
    """Mann-Kendall trend test with Theil-Sen slope."""
    x, t = _as_float(values), _as_float(normalized_times)
    if len(x) < 3:
        raise EstimatorFailure(f"Mann-Kendall needs at least 3 observations, got {len(x)}")

    tau, p_value = stats.kendalltau(t, x)
    if np.isnan(tau) or np.isnan(p_value):
        raise EstimatorFailure("Kendall tau is undefined for a constant series")

    slope = stats.theilslopes(x, t)[0]
    s, _, _ = _kendall_score(t, x, np.zeros(len(x), dtype=bool))
    return TrendEstimate(tau=float(tau), p_value=float(p_value), slope=float(slope), statistic=s)


# =============================================================================
# GROUP DIFFERENCE TESTS
# =============================================================================

def censored_group_difference(values, censor_flags, groups) -> GroupDifference:
    """
    Peto-Peto style k-sample test for left-censored data.

    Each observation scores (#certainly below it) - (#certainly above it);
    the between-group sum of squared score totals is referred to chi-square
    with k - 1 degrees of freedom.
    """
    x, c = _as_float(values), _as_bool(censor_flags)
    g = np.asarray(list(groups), dtype=object)
    labels = _distinct(g)
    if len(labels) < 2:
        raise EstimatorFailure("Group difference test needs at least 2 groups")

    scores = -_pair_signs(x, c).sum(axis=1)
    n = len(x)
    total_ss = float(np.sum(scores ** 2))
    if total_ss == 0:
        raise EstimatorFailure("No observation pair can be ordered; scores are all zero")

    between = sum(scores[g == label].sum() ** 2 / (g == label).sum() for label in labels)
    chisq = (n - 1) * between / total_ss
    p_value = float(stats.chi2.sf(chisq, len(labels) - 1))
    return GroupDifference(statistic=float(chisq), p_value=p_value)


def rank_group_difference(values, groups) -> GroupDifference:
    """Kruskal-Wallis H test across groups."""
    x = _as_float(values)
    g = np.asarray(list(groups), dtype=object)
    samples = [x[g == label] for label in _distinct(g)]
    if len(samples) < 2:
        raise EstimatorFailure("Kruskal-Wallis needs at least 2 groups")

    h_stat, p_value = stats.kruskal(*samples)
    if np.isnan(p_value):
        raise EstimatorFailure("Kruskal-Wallis p-value is undefined")
    return GroupDifference(statistic=float(h_stat), p_value=float(p_value))


# =============================================================================
# CENSORED DISTRIBUTION FIT (ROS)
# =============================================================================

class ROSFit:
    """Regression on order statistics: detected values plus modeled non-detects."""

    def __init__(self, detected: np.ndarray, modeled: np.ndarray):
        self.detected = detected
        self.modeled = modeled

    @property
    def values(self) -> np.ndarray:
        return np.concatenate([self.detected, self.modeled])

    def quantile(self, probs):
        return np.quantile(self.values, probs)


def _ros_plotting_positions(x: np.ndarray, c: np.ndarray) -> np.ndarray:
    """Helsel-Cohn plotting positions for data with one or more detection limits."""
    dls = np.unique(x[c])
    m = len(dls)

    # Exceedance probability at each DL, working down from the highest
    pe = np.zeros(m + 1)
    upper_bounds = np.concatenate([dls, [np.inf]])
    for j in range(m - 1, -1, -1):
        dl, upper = upper_bounds[j], upper_bounds[j + 1]
        a = np.sum(~c & (x >= dl) & (x < upper))
        b = np.sum(~c & (x < dl)) + np.sum(c & (x <= dl))
        ratio = a / (a + b) if (a + b) else 0.0
        pe[j] = pe[j + 1] + ratio * (1 - pe[j + 1])

    pp = np.empty(len(x))
    pe_at_edge = np.concatenate([[1.0], pe])
    lower_edges = np.concatenate([[-np.inf], dls])
    for k, (lo, hi) in enumerate(zip(lower_edges, upper_bounds)):
        idx = np.flatnonzero(~c & (x >= lo) & (x < hi))
        idx = idx[np.argsort(x[idx], kind='mergesort')]
        ranks = np.arange(1, len(idx) + 1)
        p_lo, p_hi = pe_at_edge[k], pe_at_edge[k + 1]
        pp[idx] = (1 - p_lo) + (p_lo - p_hi) * ranks / (len(idx) + 1)

    for j, dl in enumerate(dls):
        idx = np.flatnonzero(c & (x == dl))
        ranks = np.arange(1, len(idx) + 1)
        pp[idx] = (1 - pe[j]) * ranks / (len(idx) + 1)

    return pp


def censored_quantile_fit(values, censor_flags) -> ROSFit:
    """Fit a lognormal ROS model; raises when too few detected values remain."""
    x, c = _as_float(values), _as_bool(censor_flags)
    keep = ~np.isnan(x)
    x, c = x[keep], c[keep]

    detected = x[~c]
    if detected.size < 2:
        raise EstimatorFailure(f"ROS needs at least 2 detected values, got {detected.size}")
    if np.any(detected <= 0):
        raise EstimatorFailure("ROS lognormal fit requires positive detected values")

    z = stats.norm.ppf(_ros_plotting_positions(x, c))
    fit = stats.linregress(z[~c], np.log(detected))
    modeled = np.exp(fit.intercept + fit.slope * z[c])
    return ROSFit(detected=detected, modeled=modeled)


# =============================================================================
# SUITE
# =============================================================================

@dataclass(frozen=True)
class EstimatorSuite:
    """The external estimators the workflow calls, one callable per role."""

    censored_seasonal_trend: Callable[..., Any] = censored_seasonal_trend
    censored_trend: Callable[..., Any] = censored_trend
    uncensored_seasonal_trend: Callable[..., Any] = uncensored_seasonal_trend
    uncensored_trend: Callable[..., Any] = uncensored_trend
    censored_group_difference: Callable[..., Any] = censored_group_difference
    rank_group_difference: Callable[..., Any] = rank_group_difference
    censored_quantile_fit: Callable[..., Any] = censored_quantile_fit


_DEFAULT_SUITE = EstimatorSuite()


def default_estimators(suite: Optional[EstimatorSuite] = None) -> EstimatorSuite:
    """Return ``suite`` if given, else the shared default suite."""
    return suite if suite is not None else _DEFAULT_SUITE
