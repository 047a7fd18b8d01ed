from .bus import EventBus, validate_event
from .factory import (
    create_event,
    track_order,
    track_page_view,
    track_product_view,
    track_search,
)
from .models import (
    Event,
    EventType,
    OrderEvent,
    PageEvent,
    ProductEvent,
    SearchEvent,
    event_class_for,
)

__all__ = [
    "Event",
    "EventBus",
    "EventType",
    "OrderEvent",
    "PageEvent",
    "ProductEvent",
    "SearchEvent",
    "create_event",
    "event_class_for",
    "track_order",
    "track_page_view",
    "track_product_view",
    "track_search",
    "validate_event",
]
