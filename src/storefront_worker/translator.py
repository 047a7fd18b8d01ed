"""
Business fan-out rules: which jobs each storefront event produces.

Downstream adapters and dashboards depend on the exact job counts, types and
order produced here, so treat every rule as part of the contract.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from storefront_events.models import (
    Event,
    EventType,
    OrderEvent,
    PageEvent,
    ProductEvent,
    SearchEvent,
    event_class_for,
)
from storefront_queue import JobType

PRIORITY_NORMAL = "normal"
PRIORITY_HIGH = "high"


@dataclass(frozen=True)
class JobSpec:
    """
    A job the processor should enqueue, before it gets an id or timestamps.

    `priority` is informational only. The job queues are strict FIFO and the
    Job wire format has no priority field, so rules that need downstream
    consumers to see it put it in `data` as well.
    """

    type: JobType
    data: Any
    delay_ms: int = 0
    priority: str = PRIORITY_NORMAL


def translate(event: Event) -> List[JobSpec]:
    """
    Map one event to the jobs it fans out to.

    Pure: no I/O, no clock. Unrecognized event types get the default rule,
    a single analytics job. A base Event carrying a typed event type is
    rebuilt as its variant first, so the rules can read variant fields.
    """
    if not isinstance(event, event_class_for(event.type)):
        event = Event.from_dict(event.to_dict())

    rule = _RULES.get(event.type, _default_rule)
    return rule(event)


# ----------------------------------------------------------------------
# Rules
# ----------------------------------------------------------------------


def _analytics(event: Event) -> JobSpec:
    return JobSpec(JobType.PERSIST_ANALYTICS, event.to_dict())


def _product_rule(event: ProductEvent) -> List[JobSpec]:
    specs = [
        JobSpec(
            JobType.PERSIST_GRAPH,
            {
                "eventType": event.type,
                "productId": event.product_id,
                "userId": event.user_id,
                "sessionId": event.session_id,
                "timestamp": event.timestamp,
                "metadata": event.metadata,
            },
        ),
        _analytics(event),
    ]

    if event.user_id:
        specs.append(
            JobSpec(
                JobType.GENERATE_RECOMMENDATIONS,
                {
                    "userId": event.user_id,
                    "productId": event.product_id,
                    "interactionType": event.type,
                },
            )
        )

    return specs


def _search_rule(event: SearchEvent) -> List[JobSpec]:
    specs = [
        _analytics(event),
        JobSpec(
            JobType.PERSIST_VECTOR,
            {
                "type": "search_pattern",
                "query": event.query,
                "userId": event.user_id,
                "sessionId": event.session_id,
                "resultsCount": event.results_count,
                "timestamp": event.timestamp,
            },
        ),
    ]

    # Zero-result searches feed product discovery
    if event.results_count == 0:
        data = event.to_dict()
        data.update({"type": "search.no_results.analysis", "priority": PRIORITY_HIGH})
        specs.append(
            JobSpec(JobType.PERSIST_ANALYTICS, data, priority=PRIORITY_HIGH)
        )

    return specs


def _page_view_rule(event: PageEvent) -> List[JobSpec]:
    specs = [_analytics(event)]

    if event.user_id:
        specs.append(
            JobSpec(
                JobType.UPDATE_USER_PROFILE,
                {
                    "userId": event.user_id,
                    "pageUrl": event.page_url,
                    "timestamp": event.timestamp,
                    "deviceType": event.device_type,
                    "browserType": event.browser_type,
                },
            )
        )

    return specs


def _order_rule(event: OrderEvent) -> List[JobSpec]:
    items = list(event.items or [])

    specs = [
        JobSpec(
            JobType.PERSIST_GRAPH,
            {
                "eventType": event.type,
                "orderId": event.order_id,
                "userId": event.user_id,
                "items": items,
                "orderValue": event.order_total,
                "timestamp": event.timestamp,
            },
            delay_ms=0,
            priority=PRIORITY_HIGH,
        ),
        _analytics(event),
    ]

    # Seed "bought together": one job per ordered pair of distinct line items
    for i, item in enumerate(items):
        for j, other in enumerate(items):
            if i == j:
                continue
            specs.append(
                JobSpec(
                    JobType.PERSIST_GRAPH,
                    {
                        "eventType": "product.purchased.relationship",
                        "productId": item.get("productId"),
                        "coProductId": other.get("productId"),
                        "orderId": event.order_id,
                        "quantity": item.get("quantity"),
                        "price": item.get("price"),
                    },
                )
            )

    return specs


def _user_rule(event: Event) -> List[JobSpec]:
    specs = [_analytics(event)]

    if event.user_id:
        specs.append(
            JobSpec(
                JobType.UPDATE_USER_PROFILE,
                {
                    "userId": event.user_id,
                    "eventType": event.type,
                    "timestamp": event.timestamp,
                    "metadata": event.metadata,
                },
            )
        )

    return specs


def _default_rule(event: Event) -> List[JobSpec]:
    return [_analytics(event)]


_RULES: Dict[str, Callable[[Any], List[JobSpec]]] = {
    EventType.PRODUCT_VIEWED.value: _product_rule,
    EventType.PRODUCT_ADDED_TO_CART.value: _product_rule,
    EventType.PRODUCT_PURCHASED.value: _product_rule,
    EventType.SEARCH_PERFORMED.value: _search_rule,
    EventType.PAGE_VIEWED.value: _page_view_rule,
    EventType.ORDER_CREATED.value: _order_rule,
    EventType.USER_REGISTERED.value: _user_rule,
    EventType.USER_LOGIN.value: _user_rule,
}
