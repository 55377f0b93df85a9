from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

from .config import settings


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_local() -> datetime:
    return now_utc().astimezone(ZoneInfo(settings.timezone))


_EPOCH_RE = re.compile(r"^\d+(\.\d+)?$")


def _from_epoch(value: float) -> datetime:
    seconds = value / 1000.0 if value > 1e11 else float(value)
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise ValueError("Timestamp out of range") from exc


def parse_timestamp(value: Any) -> datetime:
    """Normalise a store timestamp to an aware UTC datetime.

    Accepts ISO-8601 strings (trailing ``Z`` allowed, naive values are UTC)
    and epoch seconds or milliseconds, as numbers or numeric strings. Raises ValueError otherwise.
    """
    if isinstance(value, bool):
        raise ValueError("Invalid timestamp format")

    if isinstance(value, (int, float)):
        return _from_epoch(value)

    if not isinstance(value, str):
        raise ValueError("Invalid timestamp format")

    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    # Realtime-store keys arrive as strings, epoch keys included.
    if _EPOCH_RE.match(candidate):
        return _from_epoch(float(candidate))

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def format_local(ts: datetime, tz_name: str | None = None) -> str:
    tz = ZoneInfo(tz_name or settings.timezone)
    return ts.astimezone(tz).strftime("%Y-%m-%d %H:%M:%S %Z")
