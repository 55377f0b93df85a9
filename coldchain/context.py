from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

from .core.config import Settings
from .domain.dedup import AlertDeduplicator
from .domain.interfaces import SmsGateway, Store
from .domain.models import ThresholdConfig
from .services.monitor import MonitorService
from .services.notifier import Fast2SmsGateway, NotificationDispatcher
from .stores.firebase import FirebaseConfig, FirebaseRealtimeStore
from .stores.memory import InMemoryStore

logger = logging.getLogger(__name__)


@dataclass
class MonitorContext:
    """Everything the process owns, built once at startup and passed around."""

    settings: Settings
    store: Store
    gateway: SmsGateway
    dispatcher: NotificationDispatcher
    deduplicator: AlertDeduplicator
    monitor: MonitorService

    async def start(self) -> None:
        await self.monitor.start()

    async def aclose(self) -> None:
        await self.monitor.stop()
        await self.gateway.close()
        await self.store.close()


def build_store(settings: Settings) -> Store:
    if settings.store_mode.lower() == "firebase":
        return FirebaseRealtimeStore(
            FirebaseConfig(
                base_url=settings.store_url,
                auth_token=settings.store_auth_token,
                reconnect_backoff_s=settings.store_reconnect_backoff_seconds,
                max_reconnect_backoff_s=settings.store_max_backoff_seconds,
            )
        )

    # default to memory
    return InMemoryStore()


def build_context(
    settings: Settings,
    store: Optional[Store] = None,
    gateway: Optional[SmsGateway] = None,
) -> MonitorContext:
    store = store or build_store(settings)
    gateway = gateway or Fast2SmsGateway(
        url=settings.sms_gateway_url,
        api_key=settings.sms_api_key,
        timeout=settings.sms_timeout_seconds,
    )
    dispatcher = NotificationDispatcher(
        gateway,
        destination=settings.sms_numbers,
        tz_name=settings.timezone,
        maxsize=settings.notification_queue_size,
    )
    deduplicator = AlertDeduplicator()
    monitor = MonitorService(
        store=store,
        dispatcher=dispatcher,
        deduplicator=deduplicator,
        default_thresholds=ThresholdConfig(
            temp_min=settings.default_temp_min,
            temp_max=settings.default_temp_max,
            humidity_max=settings.default_humidity_max,
            gas_max=settings.default_gas_max,
        ),
        root=settings.store_root,
    )
    logger.info("Context built (store=%s)", type(store).__name__)
    return MonitorContext(
        settings=settings,
        store=store,
        gateway=gateway,
        dispatcher=dispatcher,
        deduplicator=deduplicator,
        monitor=monitor,
    )
