"""Sample dates to year, month and hydrological season."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

import numpy as np
import pandas as pd

from .config import DEFAULT_CONFIG

logger = logging.getLogger(__name__)

# Hydrological periods
# Under ice: Dec, Jan, Feb
# High flow: Mar, Apr, May
# Open water: Jun through Nov
SEASON_BY_MONTH = {12: 'Under ice', 1: 'Under ice', 2: 'Under ice',
                   3: 'High flow', 4: 'High flow', 5: 'High flow',
                   6: 'Open water', 7: 'Open water', 8: 'Open water',
                   9: 'Open water', 10: 'Open water', 11: 'Open water'}


def season_for_month(month: Any) -> Optional[str]:
    try:
        return SEASON_BY_MONTH.get(int(month))
    except (TypeError, ValueError):
        return None


def decimal_year(datetimes: pd.Series) -> pd.Series:
    """Decimal year time axis (e.g. 2020-07-02 -> ~2020.5); NaN for NaT."""
    dt = pd.Series(pd.to_datetime(datetimes, errors='coerce'))
    days_in_year = np.where(dt.dt.is_leap_year, 366.0, 365.0)
    day_fraction = (dt.dt.hour * 60 + dt.dt.minute) / 1440.0
    return (dt.dt.year + (dt.dt.dayofyear - 1 + day_fraction) / days_in_year).astype(float)


def extract_temporal_info(datetime_col: Iterable[Any],
                          fmt: str = DEFAULT_CONFIG.datetime_format) -> pd.DataFrame:
    """
    Parse sample dates and derive year, month, season and decimal-year time.

    Timestamps that fail to parse give NaT and a null season; they are never
    treated as a fourth season.
    """
    raw = pd.Series(list(datetime_col), dtype=object)
    dt = pd.to_datetime(raw, format=fmt, errors='coerce')

    n_failed = int((dt.isna() & raw.notna()).sum())
    if n_failed:
        logger.warning(f"Could not parse {n_failed:,} of {len(raw):,} sample timestamps")

    month = dt.dt.month
    return pd.DataFrame({
        'datetime': dt,
        'year': dt.dt.year.astype('Int64'),
        'month': month.astype('Int64'),
        'season': month.map(season_for_month).astype(object),
        'time': decimal_year(dt),
    })


def is_single_month(month_col: Iterable[Any]) -> bool:
    """True when all non-null months are the same (or there are none)."""
    months = {int(m) for m in month_col if not pd.isna(m)}
    return len(months) <= 1
