# tests/conftest.py
import pytest

from itrc_trends import Dataset

from .helpers import RecordingSuite, monthly_dates


@pytest.fixture
def make_dataset():
    def _make(tokens, dates=None, parameter="Fe, Total", station="GUY-01", **kwargs):
        tokens = list(tokens)
        if dates is None:
            dates = monthly_dates(len(tokens))
        return Dataset.from_raw(tokens, dates, parameter=parameter, station=station, **kwargs)
    return _make


@pytest.fixture
def increasing_dataset(make_dataset):
    # 60 monthly samples, strictly increasing, no non-detects
    return make_dataset([f"{1.0 + 0.1 * i:.2f}" for i in range(60)])


@pytest.fixture
def recording():
    return RecordingSuite
