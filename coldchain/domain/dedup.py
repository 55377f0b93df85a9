from __future__ import annotations

import logging
from typing import Optional

from .models import AlertEvent, AlertIdentity

logger = logging.getLogger(__name__)


class AlertDeduplicator:
    """Single-slot novelty check for the store's "last alert" record.

    The first event seen is only a baseline (startup catch-up). After that an
    event is novel when its kind or timestamp differs from the remembered
    one. Two alerts committed back-to-back before the first was delivered
    collapse into one; only the survivor is reported.

    Not thread-safe: call from the single coordinator task only.
    """

    def __init__(self) -> None:
        self._last: Optional[AlertIdentity] = None

    @property
    def last_identity(self) -> Optional[AlertIdentity]:
        return self._last

    def reset(self) -> None:
        self._last = None

    def observe(self, event: Optional[AlertEvent]) -> bool:
        if event is None:
            return False

        identity = event.identity
        if self._last is None:
            self._last = identity
            logger.info(
                "Alert baseline captured: %s at %s",
                identity.kind.value, identity.occurred_at.isoformat(),
            )
            return False

        if identity == self._last:
            return False

        self._last = identity
        logger.info(
            "New alert: %s value=%s at %s",
            identity.kind.value, event.value, identity.occurred_at.isoformat(),
        )
        return True
