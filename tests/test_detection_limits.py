# tests/test_detection_limits.py
import numpy as np
import pytest

from itrc_trends import (
    ParseFailure,
    PreconditionViolation,
    calc_censoring_pct,
    has_multiple_dls,
    parse_detection_limits,
    parse_token,
    recensor_to_single_dl,
)


# ---- parsing ----
def test_parse_detection_limits_identifies_censored_values():
    result = parse_detection_limits(["L0.5", "1.0", "L0.1", "2.5", "3.0"])

    assert list(result.columns) == ["is_censored", "numeric_value", "detection_limit"]
    assert result["is_censored"].tolist() == [True, False, True, False, False]
    np.testing.assert_allclose(result["numeric_value"], [0.5, 1.0, 0.1, 2.5, 3.0])
    np.testing.assert_array_equal(
        result["detection_limit"].to_numpy(), [0.5, np.nan, 0.1, np.nan, np.nan]
    )


def test_parse_detection_limits_handles_lowercase_marker():
    result = parse_detection_limits(["l0.5", "L1.0", "2.0"])

    assert result["is_censored"].tolist() == [True, True, False]
    np.testing.assert_array_equal(result["detection_limit"].to_numpy(), [0.5, 1.0, np.nan])


def test_parse_detection_limits_detection_limit_equals_value_for_non_detects():
    result = parse_detection_limits(["L0.5", "L1.0", "L0.1", " L 2 "])

    assert result["is_censored"].all()
    np.testing.assert_array_equal(result["detection_limit"], result["numeric_value"])


def test_parse_detection_limits_all_uncensored():
    result = parse_detection_limits(["1.0", "2.0", "3.0"])

    assert not result["is_censored"].any()
    assert result["detection_limit"].isna().all()


def test_parse_detection_limits_tolerates_bad_tokens():
    result = parse_detection_limits(["1.0", "abc", "Lxyz", None, 4])

    assert len(result) == 5
    assert result["is_censored"].tolist() == [False, False, True, False, False]
    assert result["numeric_value"].isna().tolist() == [False, True, True, True, False]
    assert result["numeric_value"].iloc[4] == 4.0


def test_parse_token_is_strict():
    assert parse_token("L0.2") == (True, 0.2, 0.2)
    assert parse_token("7") == (False, 7.0, None)
    with pytest.raises(ParseFailure):
        parse_token("L")
    with pytest.raises(ValueError):
        parse_token("n/a")


# ---- multiplicity and censoring percentage ----
def test_has_multiple_dls():
    assert has_multiple_dls([0.5, 0.5, 1.0, 1.0, None, np.nan])
    assert not has_multiple_dls([0.5, 0.5, 0.5, None])
    assert not has_multiple_dls([None, np.nan])
    assert not has_multiple_dls([])


def test_calc_censoring_pct():
    assert calc_censoring_pct([True, False, True, False]) == 50
    assert calc_censoring_pct([True] * 5) == 100
    assert calc_censoring_pct([False] * 5) == 0
    assert calc_censoring_pct([True, False, False, False]) == 25
    assert calc_censoring_pct([]) == 0


def test_calc_censoring_pct_counts_missing_flags_as_detected():
    assert calc_censoring_pct([True, False, None, True]) == 50
    assert calc_censoring_pct([True, np.nan, np.nan, np.nan]) == 25


# ---- recensoring ----
def test_recensor_to_single_dl_uses_highest_limit():
    result = recensor_to_single_dl(
        values=[0.5, 1.0, 2.0, 3.0, 4.0],
        censored=[True, True, False, False, False],
        detection_limits=[0.5, 1.0, None, None, None],
    )

    assert result.max_dl_used == 1.0
    assert result.censored.tolist() == [True, True, False, False, False]
    np.testing.assert_allclose(result.values, [1.0, 1.0, 2.0, 3.0, 4.0])
    np.testing.assert_array_equal(result.detection_limit, [1.0, 1.0, np.nan, np.nan, np.nan])


def test_recensor_flags_detected_values_below_the_limit():
    result = recensor_to_single_dl(
        values=[0.2, 0.8, 0.5, 1.5],
        censored=[True, False, True, False],
        detection_limits=[0.2, None, 0.5, None],
    )

    assert result.max_dl_used == 0.5
    assert result.censored.tolist() == [True, False, True, False]
    np.testing.assert_allclose(result.values, [0.5, 0.8, 0.5, 1.5])

    result = recensor_to_single_dl(
        values=[0.2, 0.3, 1.0, 1.5],
        censored=[True, False, True, False],
        detection_limits=[0.2, None, 1.0, None],
    )
    assert result.censored.tolist() == [True, True, True, False]
    np.testing.assert_allclose(result.values, [1.0, 1.0, 1.0, 1.5])


def test_recensor_single_limit_is_a_no_op():
    values = [0.5] * 6
    result = recensor_to_single_dl(values, [True] * 6, [0.5] * 6)

    assert result.max_dl_used == 0.5
    assert result.censored.all()
    np.testing.assert_allclose(result.values, values)


def test_recensor_on_all_detect_data_fails_fast():
    with pytest.raises(PreconditionViolation):
        recensor_to_single_dl([1.0, 2.0], [False, False], [None, None])


@pytest.mark.parametrize("token", ["1_000", "L1_0", "0x1A", "inf", "Lnan", "1.0.0", "+"])
def test_parser_only_accepts_plain_decimal_numbers(token):
    result = parse_detection_limits([token])

    assert result["numeric_value"].isna().all()
    with pytest.raises(ParseFailure):
        parse_token(token)


def test_parser_accepts_signs_and_exponents():
    result = parse_detection_limits(["1e-3", "L2.5E+1", "-0.4", ".5", "7."])

    np.testing.assert_allclose(result["numeric_value"], [0.001, 25.0, -0.4, 0.5, 7.0])
    assert result["is_censored"].tolist() == [False, True, False, False, False]
