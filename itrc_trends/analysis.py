"""
ITRC trend workflow, per dataset and over a whole table of results.

raw records -> parse detection limits -> recensor (multiple DLs) ->
temporal info -> suitability gate -> seasonality -> trend test dispatch
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import pandas as pd

from .config import DEFAULT_CONFIG, TrendConfig
from .dataset import Dataset
from .detection_limits import has_multiple_dls, recensor_to_single_dl
from .estimators import EstimatorSuite, default_estimators
from .exceptions import TrendAnalysisError
from .methods import censored_summary_stats, run_trend_test
from .records import ClassificationResult, MethodResult, SeasonalityResult, SummaryStats
from .seasonality import classify_seasonality
from .suitability import classify_dataset

logger = logging.getLogger(__name__)

RESULT_COLUMNS = [
    'parameter', 'station', 'n', 'censoring_pct', 'multiple_dls', 'max_dl_used',
    'suitable', 'suitability_reason',
    'is_seasonal', 'seasonality_method', 'seasonality_statistic', 'seasonality_p_value',
    'method', 'tau', 'p_value', 'slope', 'statistic', 'success', 'error', 'significant',
    'median', 'percentile_5th', 'percentile_95th', 'summary_method', 'summary_success',
]


@dataclass(frozen=True)
class DatasetAnalysis:
    """Everything the workflow derived for one parameter/station series."""

    parameter: str
    station: str
    classification: ClassificationResult
    summary: SummaryStats
    seasonality: Optional[SeasonalityResult] = None
    trend: Optional[MethodResult] = None
    max_dl_used: Optional[float] = None
    skip_reason: Optional[str] = None

    def to_record(self, alpha: float = DEFAULT_CONFIG.alpha) -> dict[str, Any]:
        """Flatten into one row keyed by RESULT_COLUMNS."""
        c, s, t, q = self.classification, self.seasonality, self.trend, self.summary
        return {
            'parameter': self.parameter,
            'station': self.station,
            'n': c.sample_size,
            'censoring_pct': c.censoring_pct,
            'multiple_dls': c.has_multiple_detection_limits,
            'max_dl_used': self.max_dl_used,
            'suitable': c.is_suitable,
            'suitability_reason': c.suitability.message,
            'is_seasonal': c.is_seasonal,
            'seasonality_method': s.method if s else None,
            'seasonality_statistic': s.statistic if s else None,
            'seasonality_p_value': s.p_value if s else None,
            'method': t.method if t else None,
            'tau': t.tau if t else None,
            'p_value': t.p_value if t else None,
            'slope': t.slope if t else None,
            'statistic': t.statistic if t else None,
            'success': t.success if t else False,
            'error': (t.error if t else self.skip_reason),
            'significant': bool(t and t.success and t.p_value < alpha),
            'median': q.median,
            'percentile_5th': q.percentile_5th,
            'percentile_95th': q.percentile_95th,
            'summary_method': q.method,
            'summary_success': q.success,
        }


def analyze_dataset(dataset: Dataset,
                    config: TrendConfig = DEFAULT_CONFIG,
                    estimators: Optional[EstimatorSuite] = None) -> DatasetAnalysis:
    """Run the decision tree for one dataset."""
    suite = default_estimators(estimators)

    multiple_dls = has_multiple_dls(dataset.detection_limits)
    max_dl_used = None
    if multiple_dls and config.single_dl_only:
        recensor = recensor_to_single_dl(dataset.values, dataset.censored, dataset.detection_limits)
        dataset = dataset.recensored(recensor)
        max_dl_used = recensor.max_dl_used
        logger.info(f"{dataset.label}: multiple detection limits, recensored at {max_dl_used:g}")

    classification = classify_dataset(dataset, config, has_multiple_detection_limits=multiple_dls)
    summary = censored_summary_stats(dataset.values, dataset.censored, config, suite)

    if not classification.is_suitable:
        return DatasetAnalysis(
            parameter=dataset.parameter,
            station=dataset.station,
            classification=classification,
            summary=summary,
            max_dl_used=max_dl_used,
            skip_reason=classification.suitability.message,
        )

    seasonality = classify_seasonality(dataset, config, suite)
    trend = run_trend_test(dataset, seasonality.is_seasonal, suite)

    if trend.success:
        logger.info(
            f"{dataset.label}: {trend.method} tau = {trend.tau:.3f}, "
            f"p = {trend.p_value:.4f}, slope = {trend.slope}"
        )

    return DatasetAnalysis(
        parameter=dataset.parameter,
        station=dataset.station,
        classification=classification.with_seasonality(seasonality.is_seasonal),
        summary=summary,
        seasonality=seasonality,
        trend=trend,
        max_dl_used=max_dl_used,
    )


# =============================================================================
# BATCH ANALYSIS
# =============================================================================

@dataclass(frozen=True)
class ColumnMap:
    """Names of the raw-record columns the batch runner reads."""

    parameter: str = 'PARAMETER'
    station: str = 'STATION_ID'
    value: str = 'VALUE'
    datetime: str = 'SAMPLE_DATETIME'


class TrendAnalysis:
    """Runs the trend workflow over every parameter/station group in a table."""

    def __init__(self, df: pd.DataFrame,
                 config: TrendConfig = DEFAULT_CONFIG,
                 logger: Optional[logging.Logger] = None,
                 estimators: Optional[EstimatorSuite] = None,
                 columns: ColumnMap = ColumnMap()):
        self.df = df
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.estimators = default_estimators(estimators)
        self.columns = columns
        self.analyses: list[DatasetAnalysis] = []

    def run_trend_analysis(self) -> pd.DataFrame:
        """Analyze each group; one result row per parameter/station."""
        self.logger.info("=" * 60)
        self.logger.info("TREND ANALYSIS")
        self.logger.info("=" * 60)

        cols = self.columns
        missing = [c for c in (cols.parameter, cols.station, cols.value, cols.datetime)
                   if c not in self.df.columns]
        if missing:
            raise KeyError(f"Input is missing columns: {missing}")

        groups = self.df.groupby([cols.parameter, cols.station], sort=True, dropna=False)
        self.logger.info(f"Analyzing {len(self.df):,} records in {groups.ngroups:,} parameter/station groups")

        records = [self._analyze_group(str(param), str(station), group)
                   for (param, station), group in groups]
        results = pd.DataFrame(records, columns=RESULT_COLUMNS)

        n_tested = int(results['method'].notna().sum())
        n_ok = int(results['success'].fillna(False).astype(bool).sum())
        n_sig = int(results['significant'].fillna(False).astype(bool).sum())
        self.logger.info(f"  Trend tests run: {n_tested:,} of {len(results):,} groups")
        self.logger.info(f"  Successful: {n_ok:,}, significant at alpha = {self.config.alpha}: {n_sig:,}")
        return results

    def _analyze_group(self, parameter: str, station: str, group: pd.DataFrame) -> dict[str, Any]:
        try:
            dataset = Dataset.from_raw(
                group[self.columns.value],
                group[self.columns.datetime],
                parameter=parameter,
                station=station,
                config=self.config,
            )
        except TrendAnalysisError as e:
            self.logger.error(f"{parameter} @ {station}: could not build dataset: {e}")
            return {'parameter': parameter, 'station': station, 'n': len(group),
                    'success': False, 'error': f"{type(e).__name__}: {e}"}

        analysis = analyze_dataset(dataset, self.config, self.estimators)
        self.analyses.append(analysis)
        return analysis.to_record(self.config.alpha)
