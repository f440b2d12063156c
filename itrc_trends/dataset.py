"""One parameter at one station, as a canonical observation frame."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

import numpy as np
import pandas as pd

from .config import DEFAULT_CONFIG, TrendConfig
from .detection_limits import parse_detection_limits
from .exceptions import InvalidDataset
from .records import Observation, RecensorResult
from .temporal import decimal_year, extract_temporal_info, season_for_month

COLUMNS = ('value', 'is_censored', 'detection_limit',
           'datetime', 'time', 'year', 'month', 'season')


@dataclass(frozen=True, eq=False)
class Dataset:
    """
    One parameter measured at one station.

    Rows are kept in input order; anything order-sensitive (trend tests)
    sorts by the ``time`` column, never by position.
    """
    frame: pd.DataFrame = field(repr=False)
    parameter: str = ""
    station: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.frame, pd.DataFrame):
            raise InvalidDataset("Dataset.frame must be a pandas DataFrame.")
        missing = [c for c in COLUMNS if c not in self.frame.columns]
        if missing:
            raise InvalidDataset(f"Dataset.frame is missing columns: {missing}")
        if self.frame.empty:
            raise InvalidDataset(
                f"Dataset {self.parameter!r} @ {self.station!r} holds no observations."
            )
        frame = self.frame.loc[:, list(COLUMNS)].reset_index(drop=True).copy()
        frame['is_censored'] = frame['is_censored'].fillna(False).astype(bool)
        object.__setattr__(self, "frame", frame)

    # ---- construction ----
    @classmethod
    def from_raw(cls,
                 values: Iterable[Any],
                 datetimes: Iterable[Any],
                 parameter: str = "",
                 station: str = "",
                 config: TrendConfig = DEFAULT_CONFIG) -> "Dataset":
        """Build from raw laboratory value tokens and timestamp strings."""
        values = list(values)
        datetimes = list(datetimes)
        if not values:
            raise InvalidDataset(f"Dataset {parameter!r} @ {station!r} holds no observations.")
        if len(values) != len(datetimes):
            raise InvalidDataset(
                f"values ({len(values)}) and datetimes ({len(datetimes)}) differ in length."
            )

        parsed = parse_detection_limits(values)
        temporal = extract_temporal_info(datetimes, fmt=config.datetime_format)
        frame = pd.DataFrame({
            'value': parsed['numeric_value'],
            'is_censored': parsed['is_censored'],
            'detection_limit': parsed['detection_limit'],
            'datetime': temporal['datetime'],
            'time': temporal['time'],
            'year': temporal['year'],
            'month': temporal['month'],
            'season': temporal['season'],
        })
        return cls(frame, parameter=parameter, station=station)

    @classmethod
    def from_observations(cls,
                          observations: Iterable[Observation],
                          parameter: str = "",
                          station: str = "") -> "Dataset":
        obs = list(observations)
        if not obs:
            raise InvalidDataset(f"Dataset {parameter!r} @ {station!r} holds no observations.")
        dt = pd.to_datetime(pd.Series([o.timestamp for o in obs], dtype=object), errors='coerce')
        month = dt.dt.month
        seasons = [
            o.season if o.season is not None else season_for_month(m)
            for o, m in zip(obs, month)
        ]
        if not station:
            station = next((o.group for o in obs if o.group), "")

        frame = pd.DataFrame({
            'value': pd.Series([o.value for o in obs], dtype=float),
            'is_censored': pd.Series([o.is_censored for o in obs], dtype=bool),
            'detection_limit': pd.Series([o.detection_limit for o in obs], dtype=float),
            'datetime': dt,
            'time': decimal_year(dt),
            'year': dt.dt.year.astype('Int64'),
            'month': month.astype('Int64'),
            'season': pd.Series(seasons, dtype=object),
        })
        return cls(frame, parameter=parameter, station=station)

    # ---- accessors ----
    def __len__(self) -> int:
        return len(self.frame)

    @property
    def values(self) -> np.ndarray:
        return self.frame['value'].to_numpy(dtype=float)

    @property
    def censored(self) -> np.ndarray:
        return self.frame['is_censored'].to_numpy(dtype=bool)

    @property
    def detection_limits(self) -> np.ndarray:
        return self.frame['detection_limit'].to_numpy(dtype=float)

    @property
    def seasons(self) -> np.ndarray:
        return self.frame['season'].to_numpy(dtype=object)

    @property
    def is_censored(self) -> bool:
        """True if any row of ``trend_frame()`` is a non-detect.

        Seasonality and trend dispatch both branch on this; rows without a
        usable value or time are ignored.
        """
        return bool(self.trend_frame()['is_censored'].any())

    @property
    def label(self) -> str:
        return f"{self.parameter} @ {self.station}"

    # ---- derived datasets ----
    def recensored(self, result: RecensorResult) -> "Dataset":
        """New Dataset with values and flags taken from a recensoring result."""
        frame = self.frame.copy()
        frame['value'] = result.values
        frame['is_censored'] = result.censored
        frame['detection_limit'] = result.detection_limit
        return Dataset(frame, parameter=self.parameter, station=self.station)

    def trend_frame(self) -> pd.DataFrame:
        """Rows with a usable value and time, in chronological order."""
        usable = self.frame['value'].notna() & self.frame['time'].notna()
        return self.frame[usable].sort_values('time', kind='mergesort').reset_index(drop=True)
