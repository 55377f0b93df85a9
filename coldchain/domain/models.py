from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..core.timeutil import parse_timestamp

logger = logging.getLogger(__name__)


class ThresholdValidationError(ValueError):
    """Operator supplied thresholds that would invert or break classification."""


@dataclass(frozen=True)
class Reading:
    temperature: Optional[float]
    humidity: Optional[float]
    gas_level: Optional[float]
    observed_at: Optional[datetime] = None


@dataclass(frozen=True)
class ThresholdConfig:
    temp_min: float
    temp_max: float
    humidity_max: float
    gas_max: float

    def to_payload(self) -> dict[str, float]:
        return {
            "temp_min": self.temp_min,
            "temp_max": self.temp_max,
            "humidity_max": self.humidity_max,
            "gas_max": self.gas_max,
        }


class AlertKind(str, Enum):
    TOO_COLD = "TooCold"
    TOO_HOT = "TooHot"
    HUMIDITY_HIGH = "HumidityHigh"
    GAS_HIGH = "GasHigh"

    @classmethod
    def parse(cls, raw: Any) -> "AlertKind":
        if not isinstance(raw, str):
            raise ValueError(f"Alert kind must be a string, got {type(raw).__name__}")
        key = re.sub(r"[\s_\-]", "", raw).lower()
        for kind in cls:
            if kind.value.lower() == key:
                return kind
        raise ValueError(f"Unknown alert kind: {raw!r}")


@dataclass(frozen=True)
class AlertIdentity:
    kind: AlertKind
    occurred_at: datetime


@dataclass(frozen=True)
class AlertEvent:
    kind: AlertKind
    value: float
    occurred_at: datetime

    @property
    def identity(self) -> AlertIdentity:
        return AlertIdentity(kind=self.kind, occurred_at=self.occurred_at)


@dataclass(frozen=True)
class NotificationRequest:
    body: str
    destination: str


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    status_code: int
    message: str
    request_id: Optional[str] = None


def validate_thresholds(config: ThresholdConfig) -> ThresholdConfig:
    values = config.to_payload()
    for name, value in values.items():
        if not math.isfinite(value):
            raise ThresholdValidationError(f"{name} must be a finite number")
    if config.temp_min > config.temp_max:
        raise ThresholdValidationError(
            f"temp_min ({config.temp_min}) must not exceed temp_max ({config.temp_max})"
        )
    if config.humidity_max < 0:
        raise ThresholdValidationError("humidity_max must not be negative")
    if config.gas_max < 0:
        raise ThresholdValidationError("gas_max must not be negative")
    return config


# --- Store payload parsing ---
# Parsers return None (or skip the record) for unexpected shapes; they never raise.

def _as_float(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            return None
    else:
        return None
    return value if math.isfinite(value) else None


def reading_from_fields(payload: dict, observed_at: Optional[datetime]) -> Optional[Reading]:
    reading = Reading(
        temperature=_as_float(payload.get("temp")),
        humidity=_as_float(payload.get("humidity")),
        gas_level=_as_float(payload.get("gas")),
        observed_at=observed_at,
    )
    if reading.temperature is None and reading.humidity is None and reading.gas_level is None:
        return None
    return reading


def reading_from_payload(payload: Any) -> Optional[Reading]:
    if not isinstance(payload, dict):
        if payload is not None:
            logger.warning("Ignoring malformed reading payload: %r", payload)
        return None

    observed_at: Optional[datetime] = None
    if payload.get("timestamp") is not None:
        try:
            observed_at = parse_timestamp(payload["timestamp"])
        except ValueError:
            logger.warning("Reading has invalid timestamp: %r", payload["timestamp"])

    reading = reading_from_fields(payload, observed_at)
    if reading is None:
        logger.warning("Reading payload carries no usable metric: %r", payload)
    return reading


def thresholds_from_payload(payload: Any, fallback: ThresholdConfig) -> Optional[ThresholdConfig]:
    """Build a config from the store, filling absent fields from ``fallback``.

    A field that is present but not numeric rejects the whole payload.
    """
    if not isinstance(payload, dict):
        if payload is not None:
            logger.warning("Ignoring malformed thresholds payload: %r", payload)
        return None

    merged = fallback.to_payload()
    for name in merged:
        if payload.get(name) is None:
            continue
        value = _as_float(payload[name])
        if value is None:
            logger.warning("Thresholds field %s is not numeric: %r", name, payload[name])
            return None
        merged[name] = value
    return ThresholdConfig(**merged)


def alert_from_payload(payload: Any, timestamp: Any = None) -> Optional[AlertEvent]:
    """Parse an alert record; ``timestamp`` overrides the record's own field."""
    if not isinstance(payload, dict):
        if payload is not None:
            logger.warning("Ignoring malformed alert payload: %r", payload)
        return None

    raw_ts = timestamp if timestamp is not None else payload.get("timestamp")
    try:
        kind = AlertKind.parse(payload.get("type"))
        occurred_at = parse_timestamp(raw_ts)
    except ValueError as e:
        logger.warning("Ignoring alert payload (%s): %r", e, payload)
        return None

    value = _as_float(payload.get("value"))
    if value is None:
        logger.warning("Ignoring alert payload without numeric value: %r", payload)
        return None

    return AlertEvent(kind=kind, value=value, occurred_at=occurred_at)
