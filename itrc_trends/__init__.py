"""
ITRC decision-tree trend analysis for censored water quality data.

Given one parameter measured at one station, the workflow:
- parses "L"-prefixed non-detects into value / censored / detection limit
- recensors to a single detection limit when several are present
- assigns hydrological seasons (Under ice, High flow, Open water)
- checks sample size and censoring against the ITRC thresholds
- tests for seasonality and dispatches to censeaken, cenken,
  seasonal_kendall or mann_kendall
"""

from .config import DEFAULT_CONFIG, TrendConfig, setup_logging
from .dataset import Dataset
from .detection_limits import (
    calc_censoring_pct,
    has_multiple_dls,
    parse_detection_limits,
    parse_token,
    recensor_to_single_dl,
)
from .estimators import EstimatorSuite, default_estimators
from .exceptions import (
    EstimatorFailure,
    InvalidConfig,
    InvalidDataset,
    InvalidObservation,
    InvalidResult,
    ParseError,
    ParseFailure,
    PreconditionViolation,
    TrendAnalysisError,
)
from .methods import (
    DISPATCH_TABLE,
    TrendMethod,
    censored_summary_stats,
    mann_kendall_censored,
    mann_kendall_uncensored,
    run_trend_test,
    seasonal_kendall_censored,
    seasonal_kendall_uncensored,
    select_method,
)
from .records import (
    ClassificationResult,
    GateCheck,
    MethodResult,
    Observation,
    RecensorResult,
    SeasonalityResult,
    SummaryStats,
)
from .seasonality import classify_seasonality, kruskal_wallis_test, seasonal_differences_censored
from .suitability import classify_dataset, validate_censoring, validate_sample_size
from .temporal import extract_temporal_info, is_single_month, season_for_month
from .analysis import ColumnMap, DatasetAnalysis, TrendAnalysis, analyze_dataset

__version__ = "0.1.0"

__all__ = [
    # configuration
    "TrendConfig",
    "DEFAULT_CONFIG",
    "setup_logging",

    # data
    "Observation",
    "Dataset",

    # detection limits
    "parse_detection_limits",
    "parse_token",
    "has_multiple_dls",
    "calc_censoring_pct",
    "recensor_to_single_dl",

    # temporal
    "extract_temporal_info",
    "season_for_month",
    "is_single_month",

    # classification
    "validate_sample_size",
    "validate_censoring",
    "classify_dataset",
    "classify_seasonality",
    "seasonal_differences_censored",
    "kruskal_wallis_test",

    # dispatch
    "TrendMethod",
    "DISPATCH_TABLE",
    "select_method",
    "run_trend_test",
    "seasonal_kendall_censored",
    "mann_kendall_censored",
    "seasonal_kendall_uncensored",
    "mann_kendall_uncensored",
    "censored_summary_stats",

    # estimators
    "EstimatorSuite",
    "default_estimators",

    # workflow
    "analyze_dataset",
    "DatasetAnalysis",
    "TrendAnalysis",
    "ColumnMap",

    # records
    "ClassificationResult",
    "GateCheck",
    "MethodResult",
    "RecensorResult",
    "SeasonalityResult",
    "SummaryStats",

    # exceptions
    "TrendAnalysisError",
    "InvalidConfig",
    "InvalidObservation",
    "InvalidDataset",
    "InvalidResult",
    "ParseFailure",
    "ParseError",
    "PreconditionViolation",
    "EstimatorFailure",
]
