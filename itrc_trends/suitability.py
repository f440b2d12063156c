"""Sample size and censoring checks that decide whether a trend test is meaningful."""

from __future__ import annotations

import logging
import numbers
from typing import Iterable, Optional, Sized, Union

from .config import DEFAULT_CONFIG, TrendConfig
from .dataset import Dataset
from .detection_limits import calc_censoring_pct, has_multiple_dls
from .records import ClassificationResult, GateCheck

logger = logging.getLogger(__name__)


def validate_sample_size(data: Union[int, Sized],
                         min_n: int = DEFAULT_CONFIG.min_sample_size) -> GateCheck:
    """Check n >= min_n; accepts a count or anything with a length."""
    n = int(data) if isinstance(data, numbers.Integral) else len(data)
    valid = n >= min_n
    if valid:
        message = f"Sample size adequate (n = {n})"
    else:
        message = f"Insufficient sample size (n = {n}, need >= {min_n})"
    return GateCheck(name='sample_size', valid=valid, message=message,
                     value=float(n), threshold=float(min_n))


def validate_censoring(is_censored: Iterable[Optional[bool]],
                       max_pct: float = DEFAULT_CONFIG.max_censoring_pct) -> GateCheck:
    """Check the non-detect percentage is at most max_pct."""
    pct = calc_censoring_pct(is_censored)
    valid = pct <= max_pct
    if valid:
        message = f"Censoring acceptable ({pct:.1f}% non-detects)"
    else:
        message = f"Too many non-detects ({pct:.1f}% > {max_pct:g}%)"
    return GateCheck(name='censoring', valid=valid, message=message,
                     value=pct, threshold=float(max_pct))


def classify_dataset(dataset: Dataset,
                     config: TrendConfig = DEFAULT_CONFIG,
                     has_multiple_detection_limits: Optional[bool] = None) -> ClassificationResult:
    """
    Derive the facts the decision tree branches on.

    ``has_multiple_detection_limits`` lets the caller report the state before
    recensoring; when omitted it is read from the dataset itself.
    """
    if has_multiple_detection_limits is None:
        has_multiple_detection_limits = has_multiple_dls(dataset.detection_limits)

    size_check = validate_sample_size(len(dataset), config.min_sample_size)
    censoring_check = validate_censoring(dataset.censored, config.max_censoring_pct)

    failing = [c.message for c in (size_check, censoring_check) if not c.valid]
    if failing:
        reason = "; ".join(failing)
        logger.warning(f"{dataset.label}: not suitable for trend analysis - {reason}")
    else:
        reason = "Suitable for trend analysis"

    return ClassificationResult(
        sample_size=len(dataset),
        censoring_pct=censoring_check.value,
        has_multiple_detection_limits=bool(has_multiple_detection_limits),
        suitability=GateCheck(name='suitability', valid=not failing, message=reason),
        sample_size_check=size_check,
        censoring_check=censoring_check,
    )
