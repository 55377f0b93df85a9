from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .models import Reading, ThresholdConfig


class Status(str, Enum):
    BELOW = "below"
    ABOVE = "above"
    NORMAL = "normal"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    Status.BELOW: "Too Low",
    Status.ABOVE: "Too High",
    Status.NORMAL: "Normal",
}


def classify(value: float, minimum: Optional[float] = None, maximum: Optional[float] = None) -> Status:
    # Strict comparisons: a value sitting exactly on a bound is Normal.
    if minimum is not None and value < minimum:
        return Status.BELOW
    if maximum is not None and value > maximum:
        return Status.ABOVE
    return Status.NORMAL


@dataclass(frozen=True)
class ReadingStatus:
    temperature: Optional[Status] = None
    humidity: Optional[Status] = None
    gas_level: Optional[Status] = None

    @property
    def abnormal(self) -> bool:
        return any(
            s is not None and s is not Status.NORMAL
            for s in (self.temperature, self.humidity, self.gas_level)
        )


def evaluate_reading(reading: Optional[Reading], thresholds: ThresholdConfig) -> ReadingStatus:
    """Classify each metric of ``reading``; missing metrics are left unevaluated."""
    if reading is None:
        return ReadingStatus()

    def _check(value: Optional[float], lo: Optional[float], hi: Optional[float]) -> Optional[Status]:
        return None if value is None else classify(value, lo, hi)

    return ReadingStatus(
        temperature=_check(reading.temperature, thresholds.temp_min, thresholds.temp_max),
        humidity=_check(reading.humidity, None, thresholds.humidity_max),
        gas_level=_check(reading.gas_level, None, thresholds.gas_max),
    )
