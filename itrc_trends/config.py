"""
Configuration and logging for the ITRC trend workflow.

Thresholds follow the ITRC baseline water quality guidance:
- at least 50 observations per parameter/station group
- at most 50% non-detects
- alpha = 0.05 for every hypothesis test
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

from .exceptions import InvalidConfig

# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class TrendConfig:
    """Immutable thresholds passed explicitly into every component."""

    # Sample size requirements
    min_sample_size: int = 50

    # Censoring thresholds (percent, 0-100)
    max_censoring_pct: float = 50.0

    # Statistical significance
    alpha: float = 0.05

    # Seasonal analysis
    min_seasons: int = 2

    # Quantiles reported in summaries: (low, median, high)
    quantiles: tuple[float, float, float] = (0.05, 0.50, 0.95)

    # Detection limit handling: recensor to the highest DL when several exist
    single_dl_only: bool = True

    # Laboratory export timestamp format
    datetime_format: str = "%m/%d/%y %H:%M"

    def __post_init__(self) -> None:
        if self.min_sample_size < 1:
            raise InvalidConfig("min_sample_size must be >= 1.")
        if not 0 <= self.max_censoring_pct <= 100:
            raise InvalidConfig("max_censoring_pct must be within [0, 100].")
        if not 0 < self.alpha < 1:
            raise InvalidConfig("alpha must be within (0, 1).")
        if self.min_seasons < 2:
            raise InvalidConfig("min_seasons must be >= 2; a one-group test is undefined.")

        quantiles = tuple(float(q) for q in self.quantiles)
        if len(quantiles) != 3:
            raise InvalidConfig("quantiles must hold exactly (low, median, high).")
        if not all(0 <= q <= 1 for q in quantiles):
            raise InvalidConfig("quantiles must be within [0, 1].")
        if list(quantiles) != sorted(quantiles):
            raise InvalidConfig("quantiles must be in ascending order.")
        object.__setattr__(self, "quantiles", quantiles)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "TrendConfig":
        """Build a config from a plain mapping, e.g. a parsed settings file."""
        known = {f.name for f in fields(cls)}
        unknown = set(mapping) - known
        if unknown:
            raise InvalidConfig(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**dict(mapping))


DEFAULT_CONFIG = TrendConfig()


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(output_dir: Optional[Path] = None, level: int = logging.INFO) -> logging.Logger:
    """Configure the package logger for console and, optionally, a log file."""
    logger = logging.getLogger("itrc_trends")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    # File handler - detailed logging
    if output_dir is not None:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(output_dir / "analysis.log", mode='w')
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        logger.addHandler(fh)

    # Console handler - info and above
    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(logging.Formatter('%(levelname)-8s | %(message)s'))
    logger.addHandler(ch)

    return logger
