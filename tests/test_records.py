# tests/test_records.py
import dataclasses
from datetime import datetime

import numpy as np
import pytest

from itrc_trends import (
    DEFAULT_CONFIG,
    Dataset,
    InvalidConfig,
    InvalidDataset,
    InvalidObservation,
    InvalidResult,
    MethodResult,
    Observation,
    SummaryStats,
    TrendConfig,
    TrendAnalysisError,
)


# ---- configuration ----
def test_default_config_matches_guidance():
    assert DEFAULT_CONFIG.min_sample_size == 50
    assert DEFAULT_CONFIG.max_censoring_pct == 50
    assert DEFAULT_CONFIG.alpha == 0.05
    assert DEFAULT_CONFIG.min_seasons == 2
    assert DEFAULT_CONFIG.quantiles == (0.05, 0.50, 0.95)


def test_config_is_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_CONFIG.alpha = 0.1


def test_config_from_mapping():
    config = TrendConfig.from_mapping({"min_sample_size": 20, "quantiles": [0.1, 0.5, 0.9]})

    assert config.min_sample_size == 20
    assert config.quantiles == (0.1, 0.5, 0.9)
    with pytest.raises(InvalidConfig):
        TrendConfig.from_mapping({"min_samples": 20})


@pytest.mark.parametrize("kwargs", [
    {"alpha": 0},
    {"alpha": 1.5},
    {"max_censoring_pct": 120},
    {"min_seasons": 1},
    {"min_sample_size": 0},
    {"quantiles": (0.5, 0.05, 0.95)},
    {"quantiles": (0.05, 0.95)},
])
def test_config_rejects_bad_thresholds(kwargs):
    with pytest.raises(InvalidConfig):
        TrendConfig(**kwargs)


def test_exception_hierarchy():
    assert issubclass(InvalidConfig, TrendAnalysisError)
    assert issubclass(InvalidDataset, ValueError)


# ---- observations ----
def test_observation_censoring_invariants():
    Observation(value=0.5, is_censored=True, detection_limit=0.5)
    Observation(value=2.0)

    with pytest.raises(InvalidObservation):
        Observation(value=2.0, detection_limit=0.5)
    with pytest.raises(InvalidObservation):
        Observation(value=0.4, is_censored=True, detection_limit=0.5)
    with pytest.raises(InvalidObservation):
        Observation(value=0.5, is_censored=True)
    with pytest.raises(InvalidObservation):
        Observation(value=1.0, season="Spring")


# ---- datasets ----
def test_dataset_from_observations():
    obs = [
        Observation(value=0.5, is_censored=True, detection_limit=0.5,
                    timestamp=datetime(2020, 1, 15), group="GUY-01"),
        Observation(value=2.0, timestamp=datetime(2020, 4, 15), group="GUY-01"),
        Observation(value=3.0, timestamp=None, group="GUY-01"),
    ]
    ds = Dataset.from_observations(obs, parameter="Mn, Total")

    assert len(ds) == 3
    assert ds.station == "GUY-01"
    assert ds.is_censored
    assert ds.seasons[0] == "Under ice"
    assert ds.seasons[1] == "High flow"
    assert ds.seasons[2] is None
    assert len(ds.trend_frame()) == 2


def test_dataset_must_not_be_empty():
    with pytest.raises(InvalidDataset):
        Dataset.from_raw([], [])
    with pytest.raises(InvalidDataset):
        Dataset.from_observations([])


def test_dataset_rejects_mismatched_inputs():
    with pytest.raises(InvalidDataset):
        Dataset.from_raw(["1.0", "2.0"], ["01/15/20 10:00"])


def test_trend_frame_orders_by_time_not_position():
    ds = Dataset.from_raw(["3.0", "1.0", "2.0"],
                          ["03/15/20 10:00", "01/15/20 10:00", "02/15/20 10:00"])

    frame = ds.trend_frame()
    assert frame["value"].tolist() == [1.0, 2.0, 3.0]
    assert frame["time"].is_monotonic_increasing
    # original order untouched
    assert ds.values.tolist() == [3.0, 1.0, 2.0]


# ---- results ----
def test_method_result_error_iff_failed():
    MethodResult(method="cenken", tau=0.2, p_value=0.3)
    failed = MethodResult.failed("cenken", "boom")
    assert failed.tau is None and failed.p_value is None and failed.slope is None

    with pytest.raises(InvalidResult):
        MethodResult(method="cenken", success=False)
    with pytest.raises(InvalidResult):
        MethodResult(method="cenken", error="boom")


def test_method_result_serializes_with_stable_fields():
    result = MethodResult(method="mann_kendall", tau=np.float64(0.5), p_value=0.01,
                          slope=np.nan, statistic=12)

    assert result.to_dict() == {
        "method": "mann_kendall",
        "tau": 0.5,
        "p_value": 0.01,
        "slope": None,
        "statistic": 12.0,
        "success": True,
        "error": None,
    }
    assert type(result.to_dict()["tau"]) is float


def test_method_result_is_immutable():
    result = MethodResult(method="cenken", tau=0.2, p_value=0.3)
    with pytest.raises(dataclasses.FrozenInstanceError):
        result.tau = 0.9


def test_summary_stats_fields():
    stats = SummaryStats(method="cenros", median=2.0, percentile_5th=1.0, percentile_95th=3.0)
    assert list(stats.to_dict()) == [
        "method", "median", "percentile_5th", "percentile_95th", "success", "error",
    ]
