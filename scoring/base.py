"""Base scorer abstract class and the bounded normalization primitives."""
import math
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from common.logger import get_logger
from common.models import AssetRecord, DerivedMetrics, ScanConfiguration

BELL_EPSILON = 1e-9


def is_num(x) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool) and math.isfinite(x)


def clamp(x: float, lo: float, hi: float) -> float:
    return float(np.clip(x, lo, hi))


def clamped_linear(x: Optional[float], lo: float, hi: float) -> float:
    """Linear ramp from 0 at ``lo`` to 1 at ``hi``. Non-finite input and hi == lo give 0."""
    if not is_num(x) or hi == lo:
        return 0.0
    return clamp((x - lo) / (hi - lo), 0.0, 1.0)


def bell_peak(x: Optional[float], center: float, width: float) -> float:
    """1.0 at ``center``, decaying linearly to 0 at ``center ± width``."""
    if not is_num(x):
        return 0.0
    return clamp(1.0 - abs(x - center) / max(BELL_EPSILON, width), 0.0, 1.0)


def log10_or_none(x: Optional[float], floor: float) -> Optional[float]:
    """log10(max(floor, x)), or None when x is missing."""
    if not is_num(x):
        return None
    return math.log10(max(floor, x))


class BaseScorer(ABC):
    """One scoring axis. Subclasses return a value in [0, 100]."""

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    @abstractmethod
    def score(self, record: AssetRecord, metrics: DerivedMetrics,
              config: ScanConfiguration) -> float:
        pass

    @staticmethod
    def blend(terms: list[tuple[float, float]]) -> float:
        """Weighted sum of [0,1] terms scaled to [0, 100]."""
        return clamp(sum(value * weight for value, weight in terms) * 100, 0.0, 100.0)

    @staticmethod
    def volume_score(record: AssetRecord, config: ScanConfiguration) -> float:
        """Absolute 24h volume on a log scale."""
        log_vol = log10_or_none(record.volume_24h, 1.0)
        if log_vol is None:
            return 0.0
        return clamped_linear(log_vol, config.volume_log_lo, config.volume_log_hi)

    @staticmethod
    def volume_to_mc_score(metrics: DerivedMetrics, config: ScanConfiguration) -> float:
        """Volume / market cap on a log scale."""
        log_ratio = log10_or_none(metrics.volume_to_market_cap, 1e-9)
        if log_ratio is None:
            return 0.0
        return clamped_linear(log_ratio, config.volume_to_mc_log_lo, config.volume_to_mc_log_hi)
