from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Iterable

from ..core.timeutil import parse_timestamp
from .models import AlertEvent, Reading, reading_from_fields, alert_from_payload

logger = logging.getLogger(__name__)


TIME_RANGES: dict[str, timedelta] = {
    "1h": timedelta(hours=1),
    "6h": timedelta(hours=6),
    "24h": timedelta(hours=24),
}


def alert_history_from_payload(payload: Any) -> tuple[AlertEvent, ...]:
    """Materialise ``alerts/history`` most recent first.

    The store keys each record by its timestamp; the key wins over any
    timestamp field inside the record.
    """
    if not isinstance(payload, dict):
        if payload is not None:
            logger.warning("Ignoring malformed alert history payload: %r", type(payload).__name__)
        return ()

    alerts: list[AlertEvent] = []
    for key, record in payload.items():
        event = alert_from_payload(record, timestamp=key)
        if event is not None:
            alerts.append(event)
    alerts.sort(key=lambda a: a.occurred_at, reverse=True)
    return tuple(alerts)


def reading_history_from_payload(payload: Any) -> tuple[Reading, ...]:
    """Materialise the raw ``history`` time-series oldest first."""
    if not isinstance(payload, dict):
        if payload is not None:
            logger.warning("Ignoring malformed reading history payload: %r", type(payload).__name__)
        return ()

    points: list[Reading] = []
    skipped = 0
    for key, values in payload.items():
        if not isinstance(values, dict):
            skipped += 1
            continue
        try:
            observed_at = parse_timestamp(key)
        except ValueError:
            skipped += 1
            continue
        reading = reading_from_fields(values, observed_at)
        if reading is None:
            skipped += 1
            continue
        points.append(reading)

    if skipped:
        logger.warning("Skipped %d malformed history record(s)", skipped)
    points.sort(key=lambda r: r.observed_at)
    return tuple(points)


def within_range(points: Iterable[Reading], range_key: str, now: datetime) -> list[Reading]:
    if range_key not in TIME_RANGES:
        raise ValueError(f"Unknown time range {range_key!r}, expected one of {', '.join(TIME_RANGES)}")
    cutoff = now - TIME_RANGES[range_key]
    return [p for p in points if p.observed_at is not None and p.observed_at > cutoff]
