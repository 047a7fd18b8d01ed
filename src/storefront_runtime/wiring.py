from typing import Any, Dict, Mapping, Optional

from redis import Redis

from storefront_adapters import SyncAdapter, build_adapters
from storefront_events import EventBus
from storefront_queue import QueueStore
from storefront_worker import JobProcessor

from .settings import connect_redis, get_setting


def build_store(settings: Dict[str, Any], redis_client: Optional[Redis] = None) -> QueueStore:
    return QueueStore(redis_client if redis_client is not None else connect_redis(settings))


def build_bus(store: QueueStore) -> EventBus:
    return EventBus(store)


def build_processor(
    settings: Dict[str, Any],
    store: QueueStore,
    adapters: Optional[Mapping[Any, SyncAdapter]] = None,
) -> JobProcessor:
    """JobProcessor configured from settings["processor"]."""
    return JobProcessor(
        store,
        adapters if adapters is not None else build_adapters(settings),
        tick_interval=float(get_setting(settings, "processor.tick_interval", 5.0)),
        pop_timeout=float(get_setting(settings, "processor.pop_timeout", 1.0)),
        retry_delay_ms=int(get_setting(settings, "processor.retry_delay_ms", 30000)),
        max_attempts=int(get_setting(settings, "processor.max_attempts", 3)),
    )
