import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Type

from storefront_queue.errors import JobDecodeError


class EventType(str, Enum):
    """Every storefront event type a producer may emit."""

    # Product
    PRODUCT_VIEWED = "product.viewed"
    PRODUCT_ADDED_TO_CART = "product.added_to_cart"
    PRODUCT_REMOVED_FROM_CART = "product.removed_from_cart"
    PRODUCT_PURCHASED = "product.purchased"
    PRODUCT_REVIEWED = "product.reviewed"
    PRODUCT_WISHLISTED = "product.wishlisted"

    # User journey
    USER_REGISTERED = "user.registered"
    USER_LOGIN = "user.login"
    USER_LOGOUT = "user.logout"
    USER_PROFILE_UPDATED = "user.profile_updated"

    # Search
    SEARCH_PERFORMED = "search.performed"
    SEARCH_RESULT_CLICKED = "search.result_clicked"
    SEARCH_NO_RESULTS = "search.no_results"

    # Navigation
    PAGE_VIEWED = "page.viewed"
    PAGE_EXITED = "page.exited"
    NAVIGATION_EVENT = "navigation.event"

    # Orders and payments
    ORDER_CREATED = "order.created"
    ORDER_UPDATED = "order.updated"
    ORDER_CANCELLED = "order.cancelled"
    PAYMENT_COMPLETED = "payment.completed"
    PAYMENT_FAILED = "payment.failed"

    # Engagement
    NEWSLETTER_SUBSCRIBED = "newsletter.subscribed"
    SOCIAL_SHARE = "social.share"
    REVIEW_HELPFUL_VOTED = "review.helpful_voted"

    # Admin
    ADMIN_PRODUCT_CREATED = "admin.product.created"
    ADMIN_PRODUCT_UPDATED = "admin.product.updated"
    ADMIN_PRODUCT_DELETED = "admin.product.deleted"


@dataclass
class Event:
    """
    Base storefront event.

    Subclasses add type-specific fields. WIRE_FIELDS maps each extra
    attribute to its JSON key; keys nobody claims are kept in `extra` so
    they survive a round trip through the queue.
    """

    WIRE_FIELDS: ClassVar[Dict[str, str]] = {}

    id: str
    type: str
    timestamp: int
    session_id: str = ""
    user_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.type, Enum):
            self.type = self.type.value

    def to_dict(self) -> Dict[str, Any]:
        raw: Dict[str, Any] = dict(self.extra)
        raw.update(
            {
                "id": self.id,
                "type": self.type,
                "timestamp": self.timestamp,
                "sessionId": self.session_id,
                "metadata": self.metadata,
            }
        )
        if self.user_id is not None:
            raw["userId"] = self.user_id

        for attr, key in self.WIRE_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                raw[key] = value

        return raw

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Event":
        """
        Build the right Event variant for raw["type"].

        No validation happens here; the event bus decides what is acceptable.
        """
        if not isinstance(raw, dict):
            raise JobDecodeError(f"Not an event: {raw!r}")

        event_type = _type_string(raw.get("type"))
        event_cls = event_class_for(event_type)
        known = {"id", "type", "timestamp", "sessionId", "userId", "metadata"}
        known.update(event_cls.WIRE_FIELDS.values())

        kwargs = {
            attr: raw.get(key) for attr, key in event_cls.WIRE_FIELDS.items()
        }
        user_id = raw.get("userId")

        try:
            return event_cls(
                id=str(raw.get("id") or ""),
                type=event_type,
                timestamp=_as_int(raw.get("timestamp")),
                session_id=str(raw.get("sessionId") or ""),
                user_id=str(user_id) if user_id is not None else None,
                metadata=dict(raw.get("metadata") or {}),
                extra={k: v for k, v in raw.items() if k not in known},
                **kwargs,
            )
        except (TypeError, ValueError) as e:
            raise JobDecodeError(f"Malformed event {raw.get('id')}: {e}") from e

    @classmethod
    def from_json(cls, raw: str) -> "Event":
        try:
            return cls.from_dict(json.loads(raw))
        except json.JSONDecodeError as e:
            raise JobDecodeError(f"Event is not valid JSON: {e}") from e


@dataclass
class ProductEvent(Event):
    WIRE_FIELDS: ClassVar[Dict[str, str]] = {
        "product_id": "productId",
        "product_name": "productName",
        "product_price": "productPrice",
        "product_category": "productCategory",
    }

    product_id: Optional[int] = None
    product_name: Optional[str] = None
    product_price: Optional[float] = None
    product_category: Optional[str] = None


@dataclass
class SearchEvent(Event):
    WIRE_FIELDS: ClassVar[Dict[str, str]] = {
        "query": "query",
        "results_count": "resultsCount",
        "filters": "filters",
    }

    query: Optional[str] = None
    results_count: Optional[int] = None
    filters: Optional[Dict[str, Any]] = None


@dataclass
class PageEvent(Event):
    WIRE_FIELDS: ClassVar[Dict[str, str]] = {
        "page_url": "pageUrl",
        "page_title": "pageTitle",
        "referrer": "referrer",
        "device_type": "deviceType",
        "browser_type": "browserType",
    }

    page_url: Optional[str] = None
    page_title: Optional[str] = None
    referrer: Optional[str] = None
    device_type: Optional[str] = None
    browser_type: Optional[str] = None


@dataclass
class OrderEvent(Event):
    WIRE_FIELDS: ClassVar[Dict[str, str]] = {
        "order_id": "orderId",
        "order_total": "orderTotal",
        "items": "items",
    }

    order_id: Optional[str] = None
    order_total: Optional[float] = None
    # Line items: {"productId", "quantity", "price"}
    items: Optional[List[Dict[str, Any]]] = None


_PREFIX_CLASSES: Dict[str, Type[Event]] = {
    "product": ProductEvent,
    "search": SearchEvent,
    "page": PageEvent,
    "navigation": PageEvent,
    "order": OrderEvent,
    "payment": OrderEvent,
}


def event_class_for(event_type: str) -> Type[Event]:
    """Pick the Event variant for a type string (base Event if none fits)."""
    prefix = _type_string(event_type).split(".", 1)[0]
    return _PREFIX_CLASSES.get(prefix, Event)


def _type_string(value: Any) -> str:
    if isinstance(value, Enum):
        return value.value
    return str(value) if value else ""


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


__all__ = [
    "Event",
    "EventType",
    "OrderEvent",
    "PageEvent",
    "ProductEvent",
    "SearchEvent",
    "event_class_for",
]
