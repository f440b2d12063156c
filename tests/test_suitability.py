# tests/test_suitability.py
import pandas as pd

from itrc_trends import (
    DEFAULT_CONFIG,
    TrendConfig,
    classify_dataset,
    validate_censoring,
    validate_sample_size,
)


def test_validate_sample_size_accepts_adequate_samples():
    result = validate_sample_size(pd.DataFrame({"value": range(50)}), min_n=50)

    assert result.valid
    assert result.value == 50
    assert "adequate" in result.message


def test_validate_sample_size_rejects_insufficient_samples():
    result = validate_sample_size(pd.DataFrame({"value": range(30)}), min_n=50)

    assert not result.valid
    assert result.value == 30
    assert "Insufficient" in result.message


def test_validate_sample_size_boundary_is_inclusive():
    flips = [validate_sample_size(n).valid for n in range(45, 56)]

    assert flips == [n >= DEFAULT_CONFIG.min_sample_size for n in range(45, 56)]
    assert not validate_sample_size(49).valid
    assert validate_sample_size(50).valid


def test_validate_censoring_boundary_is_inclusive():
    assert validate_censoring([True, False, True, False], max_pct=50).valid
    result = validate_censoring([True, True, True, False], max_pct=50)
    assert not result.valid
    assert result.value == 75
    assert "non-detects" in result.message


def test_classify_dataset_suitable(increasing_dataset):
    result = classify_dataset(increasing_dataset)

    assert result.sample_size == 60
    assert result.censoring_pct == 0
    assert not result.has_multiple_detection_limits
    assert result.is_seasonal is None
    assert result.is_suitable
    assert result.sample_size_check.valid and result.censoring_check.valid


def test_classify_dataset_annotates_without_raising(make_dataset):
    ds = make_dataset(["L0.5"] * 8 + ["L1.0", "2.0"])
    result = classify_dataset(ds)

    assert result.sample_size == 10
    assert result.censoring_pct == 90
    assert result.has_multiple_detection_limits
    assert not result.is_suitable
    assert "Insufficient sample size" in result.suitability.message
    assert "Too many non-detects" in result.suitability.message


def test_classify_dataset_thresholds_are_configurable(make_dataset):
    ds = make_dataset(["L0.5", "1.0", "2.0", "3.0", "4.0"])
    config = TrendConfig(min_sample_size=5, max_censoring_pct=20)

    assert classify_dataset(ds, config).is_suitable
    assert not classify_dataset(ds, TrendConfig(min_sample_size=5, max_censoring_pct=10)).is_suitable
