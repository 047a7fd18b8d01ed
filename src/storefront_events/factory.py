"""Helpers that build well-formed events and publish them on a bus."""

import uuid
from typing import Any, Dict, List, Optional

from storefront_queue import now_ms

from .bus import EventBus
from .models import (
    Event,
    EventType,
    OrderEvent,
    PageEvent,
    ProductEvent,
    SearchEvent,
    event_class_for,
)


def new_event_id(prefix: str) -> str:
    """`<prefix>_<epoch ms>_<9 random chars>`"""
    return f"{prefix}_{now_ms()}_{uuid.uuid4().hex[:9]}"


def create_event(
    event_type: str,
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
    **fields: Any,
) -> Event:
    """
    Build an event of the right variant for event_type.

    Args:
        event_type: EventType member or raw type string.
        metadata: Free-form metadata.
        user_id: Optional signed-in user.
        session_id: Defaults to a fresh `session_<ms>` id.
        **fields: Type-specific attributes (e.g. product_id, query).
    """
    event_cls = event_class_for(event_type)
    type_value = getattr(event_type, "value", event_type)
    timestamp = now_ms()

    return event_cls(
        id=new_event_id(type_value),
        type=type_value,
        timestamp=timestamp,
        session_id=session_id or f"session_{timestamp}",
        user_id=user_id,
        metadata=dict(metadata or {}),
        **fields,
    )


def track_product_view(
    bus: EventBus,
    product_id: int,
    session_id: str,
    product_name: Optional[str] = None,
    product_price: Optional[float] = None,
    product_category: Optional[str] = None,
    user_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> ProductEvent:
    event = ProductEvent(
        id=new_event_id("pv"),
        type=EventType.PRODUCT_VIEWED,
        timestamp=now_ms(),
        session_id=session_id,
        user_id=user_id,
        metadata=dict(metadata or {}),
        product_id=product_id,
        product_name=product_name,
        product_price=product_price,
        product_category=product_category,
    )
    bus.emit(event)
    return event


def track_search(
    bus: EventBus,
    query: str,
    results_count: int,
    session_id: str,
    user_id: Optional[str] = None,
    filters: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> SearchEvent:
    event = SearchEvent(
        id=new_event_id("search"),
        type=EventType.SEARCH_PERFORMED,
        timestamp=now_ms(),
        session_id=session_id,
        user_id=user_id,
        metadata=dict(metadata or {}),
        query=query,
        results_count=results_count,
        filters=filters,
    )
    bus.emit(event)
    return event


def track_page_view(
    bus: EventBus,
    page_url: str,
    session_id: str,
    page_title: Optional[str] = None,
    device_type: Optional[str] = None,
    browser_type: Optional[str] = None,
    referrer: Optional[str] = None,
    user_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> PageEvent:
    event = PageEvent(
        id=new_event_id("page"),
        type=EventType.PAGE_VIEWED,
        timestamp=now_ms(),
        session_id=session_id,
        user_id=user_id,
        metadata=dict(metadata or {}),
        page_url=page_url,
        page_title=page_title,
        referrer=referrer,
        device_type=device_type,
        browser_type=browser_type,
    )
    bus.emit(event)
    return event


def track_order(
    bus: EventBus,
    order_id: str,
    order_value: float,
    items: List[Dict[str, Any]],
    session_id: str,
    user_id: Optional[str] = None,
    payment_method: Optional[str] = None,
    shipping_method: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> OrderEvent:
    """
    Emit ORDER_CREATED.

    Each item is a dict with productId, quantity and price. Item count and
    payment/shipping methods travel in metadata.
    """
    merged = dict(metadata or {})
    merged.update(
        {
            "itemCount": len(items),
            "paymentMethod": payment_method,
            "shippingMethod": shipping_method,
        }
    )

    event = OrderEvent(
        id=new_event_id("order"),
        type=EventType.ORDER_CREATED,
        timestamp=now_ms(),
        session_id=session_id,
        user_id=user_id,
        metadata=merged,
        order_id=order_id,
        order_total=order_value,
        items=list(items),
    )
    bus.emit(event)
    return event
