from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ..domain.dedup import AlertDeduplicator
from ..domain.evaluator import ReadingStatus, evaluate_reading
from ..domain.history import alert_history_from_payload, reading_history_from_payload
from ..domain.interfaces import Store
from ..domain.models import (
    AlertEvent,
    Reading,
    ThresholdConfig,
    alert_from_payload,
    reading_from_payload,
    thresholds_from_payload,
    validate_thresholds,
)
from .notifier import NotificationDispatcher
from .subscriptions import FeedSubscription, SubscriptionHub

logger = logging.getLogger(__name__)


FEEDS = {
    "latest": "latest",
    "thresholds": "thresholds",
    "last_alert": "alerts/last",
    "alert_history": "alerts/history",
    "history": "history",
}


@dataclass
class LiveState:
    thresholds: ThresholdConfig
    latest: Optional[Reading] = None
    status: ReadingStatus = field(default_factory=ReadingStatus)
    last_alert: Optional[AlertEvent] = None
    alert_history: tuple[AlertEvent, ...] = ()
    history: tuple[Reading, ...] = ()
    loading: bool = True
    alerts_notified: int = 0


class MonitorService:
    def __init__(
        self,
        store: Store,
        dispatcher: NotificationDispatcher,
        deduplicator: AlertDeduplicator,
        default_thresholds: ThresholdConfig,
        root: str = "cold-chain",
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._dedup = deduplicator
        self._root = root.strip("/")
        self._hub = SubscriptionHub(store)
        self._handlers = {
            "latest": self.on_latest,
            "thresholds": self.on_thresholds,
            "last_alert": self.on_last_alert,
            "alert_history": self.on_alert_history,
            "history": self.on_history,
        }
        self.live = LiveState(thresholds=default_thresholds)

    def path(self, feed: str) -> str:
        return f"{self._root}/{FEEDS[feed]}"

    def subscriptions(self) -> list[FeedSubscription]:
        return self._hub.subscriptions()

    async def start(self) -> None:
        self._dispatcher.start()
        for feed, handler in self._handlers.items():
            self._hub.subscribe(feed, self.path(feed), handler)
        logger.info("Monitor started (root=%s, feeds=%d)", self._root, len(self._handlers))

    async def stop(self) -> None:
        await self._hub.release_all()
        await self._dispatcher.stop()
        logger.info("Monitor stopped")

    # --- feed handlers (run on the coordinator task only) ---

    def on_latest(self, payload: Any) -> None:
        reading = reading_from_payload(payload)
        if reading is not None:
            self.live.latest = reading
            self._refresh_status()
        self.live.loading = False

    def on_thresholds(self, payload: Any) -> None:
        config = thresholds_from_payload(payload, fallback=self.live.thresholds)
        if config is None:
            return
        if config.temp_min > config.temp_max:
            logger.warning(
                "Store thresholds are inverted (temp_min=%s > temp_max=%s)",
                config.temp_min, config.temp_max,
            )
        self.live.thresholds = config
        self._refresh_status()

    def on_last_alert(self, payload: Any) -> None:
        event = alert_from_payload(payload)
        if event is None:
            return
        self.live.last_alert = event
        if self._dedup.observe(event):
            self.live.alerts_notified += 1
            self._dispatcher.submit(event)

    def on_alert_history(self, payload: Any) -> None:
        if payload is None:
            return
        self.live.alert_history = alert_history_from_payload(payload)

    def on_history(self, payload: Any) -> None:
        if payload is None:
            return
        self.live.history = reading_history_from_payload(payload)

    def _refresh_status(self) -> None:
        status = evaluate_reading(self.live.latest, self.live.thresholds)
        if status.abnormal and not self.live.status.abnormal:
            logger.info("Reading out of range: %s", status)
        self.live.status = status

    # --- operator writes ---

    async def update_thresholds(self, config: ThresholdConfig) -> ThresholdConfig:
        """Validate and write ``config`` as a full replace. Raises on bad input or store failure."""
        validate_thresholds(config)
        await self._store.set(self.path("thresholds"), config.to_payload())
        logger.info("Thresholds updated: %s", config)
        return config
