"""
Detection limit handling for left-censored laboratory results.

Laboratory exports mark a non-detect with a leading "L" (less than): the
token "L0.5" means the analyte was not detected at a detection limit of 0.5.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Iterable, Optional

import numpy as np
import pandas as pd

from .exceptions import ParseFailure, PreconditionViolation
from .records import RecensorResult

logger = logging.getLogger(__name__)

_ND_MARKER = re.compile(r"^[Ll]")
_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def _split_token(token: Any) -> tuple[bool, float]:
    """Split a raw token into (is_censored, numeric_value); NaN when unparseable."""
    if token is None or (isinstance(token, float) and math.isnan(token)):
        return False, math.nan
    if isinstance(token, (int, float, np.number)) and not isinstance(token, bool):
        return False, float(token)

    text = str(token).strip()
    censored = _ND_MARKER.match(text) is not None
    remainder = (text[1:] if censored else text).strip()
    if not _NUMBER.match(remainder):
        return censored, math.nan
    return censored, float(remainder)


def parse_token(token: Any) -> tuple[bool, float, Optional[float]]:
    """Strictly parse one token into (is_censored, numeric_value, detection_limit)."""
    censored, value = _split_token(token)
    if math.isnan(value):
        raise ParseFailure(f"Cannot parse numeric value from {token!r}")
    return censored, value, (value if censored else None)


def parse_detection_limits(value_col: Iterable[Any]) -> pd.DataFrame:
    """
    Extract non-detect flags and numeric values from laboratory result strings.

    Returns a frame with columns is_censored, numeric_value and detection_limit,
    one row per input token in input order. For a non-detect the numeric value
    is the detection limit; detected values have no detection limit. Tokens
    that cannot be parsed yield NaN rather than aborting the batch.
    """
    tokens = list(value_col)
    parsed = [_split_token(t) for t in tokens]

    is_censored = pd.Series([p[0] for p in parsed], dtype=bool)
    numeric_value = pd.Series([p[1] for p in parsed], dtype=float)
    detection_limit = numeric_value.where(is_censored)

    n_failed = int(numeric_value.isna().sum())
    if n_failed:
        logger.warning(f"Could not parse {n_failed:,} of {len(tokens):,} value tokens")

    return pd.DataFrame({
        'is_censored': is_censored,
        'numeric_value': numeric_value,
        'detection_limit': detection_limit,
    })


def has_multiple_dls(dl_values: Iterable[Optional[float]]) -> bool:
    """True if more than one distinct detection limit is present."""
    dls = {float(dl) for dl in dl_values if not pd.isna(dl)}
    return len(dls) > 1


def calc_censoring_pct(is_censored: Iterable[Optional[bool]]) -> float:
    """
    Percentage (0-100) of censored observations.

    Missing flags count as not censored and stay in the denominator.
    """
    flags = list(is_censored)
    if not flags:
        return 0.0
    n_censored = sum(1 for f in flags if not pd.isna(f) and bool(f))
    return 100.0 * n_censored / len(flags)


def recensor_to_single_dl(values: Iterable[float],
                          censored: Iterable[bool],
                          detection_limits: Iterable[Optional[float]]) -> RecensorResult:
    """
    Recensor data to the highest detection limit.

    Every value at or below the maximum detection limit becomes a non-detect
    at that limit; values above it are unchanged.
    """
    values = np.asarray(list(values), dtype=float)
    censored = np.asarray(list(censored), dtype=bool)
    dls = np.asarray(list(detection_limits), dtype=float)

    known = dls[~np.isnan(dls)]
    if known.size == 0:
        raise PreconditionViolation("Cannot recensor a dataset without detection limits.")
    max_dl = float(known.max())

    below = values <= max_dl
    new_censored = below | censored
    new_values = np.where(below, max_dl, values)
    new_dl = np.where(below, max_dl, np.where(censored, dls, np.nan))

    logger.debug(
        f"Recensored {int(below.sum()):,} observations at DL = {max_dl:g} "
        f"({int(below.sum() - censored.sum()):,} previously detected)"
    )

    return RecensorResult(
        values=new_values,
        censored=new_censored,
        detection_limit=new_dl,
        max_dl_used=max_dl,
    )
