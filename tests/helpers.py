# tests/helpers.py
from itrc_trends import EstimatorSuite


def monthly_dates(n, start_year=2010, start_month=1):
    """n timestamps, one per month, in the laboratory export format."""
    dates = []
    for i in range(n):
        k = start_month - 1 + i
        year, month = start_year + k // 12, k % 12 + 1
        dates.append(f"{month:02d}/15/{year % 100:02d} 10:00")
    return dates


class RecordingSuite:
    """Fake estimators that record which role was called and with what."""

    def __init__(self, trend_result=None, group_result=None, error=None):
        self.calls = []
        self.trend_result = trend_result or {'tau': 0.4, 'p_value': 0.02, 'slope': 1.5}
        self.group_result = group_result or {'statistic': 3.0, 'p_value': 0.5}
        self.error = error

    def _record(self, name, result, *args):
        self.calls.append((name, args))
        if self.error is not None:
            raise self.error
        return result

    def suite(self):
        return EstimatorSuite(
            censored_seasonal_trend=lambda *a: self._record('censored_seasonal_trend', self.trend_result, *a),
            censored_trend=lambda *a: self._record('censored_trend', self.trend_result, *a),
            uncensored_seasonal_trend=lambda *a: self._record('uncensored_seasonal_trend', self.trend_result, *a),
            uncensored_trend=lambda *a: self._record('uncensored_trend', self.trend_result, *a),
            censored_group_difference=lambda *a: self._record('censored_group_difference', self.group_result, *a),
            rank_group_difference=lambda *a: self._record('rank_group_difference', self.group_result, *a),
            censored_quantile_fit=lambda *a: self._record('censored_quantile_fit', None, *a),
        )

    @property
    def called(self):
        return [name for name, _ in self.calls]
