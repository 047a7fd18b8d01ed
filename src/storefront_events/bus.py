import logging
from collections import defaultdict
from typing import Callable, Dict, List

from redis.exceptions import RedisError

from storefront_queue import EventValidationError, QueueKeys, QueueStore

from .models import Event

logger = logging.getLogger(__name__)

Listener = Callable[[Event], None]


def validate_event(event: Event) -> None:
    """
    Check the fields every event must carry.

    Raises:
        EventValidationError: id or type is empty, or timestamp is zero.
    """
    if not isinstance(event, Event):
        raise EventValidationError(f"Expected an Event, got {type(event).__name__}")

    missing = [
        name
        for name, value in (
            ("id", event.id),
            ("type", event.type),
            ("timestamp", event.timestamp),
        )
        if not value
    ]
    if missing:
        raise EventValidationError(
            f"Invalid event structure: missing {', '.join(missing)}"
        )


class EventBus:
    """
    Durable event publisher with in-process listeners.

    Responsibilities:
    - Validate events before they reach the queue
    - Push each accepted event onto events:queue exactly once
    - Call listeners for the event type synchronously, after the push
    """

    def __init__(self, store: QueueStore):
        self.store = store
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def emit(self, event: Event) -> None:
        """
        Publish an event. Best effort: never raises.

        Invalid events are logged and dropped. Listener errors are logged
        per listener and never undo the queue push.
        """
        self.publish(event)

    def publish(self, event: Event) -> bool:
        """
        Same as emit(), but tells the caller what happened.

        Returns:
            True  -> event pushed onto events:queue
            False -> event rejected or the push failed (already logged)
        """
        try:
            validate_event(event)
        except EventValidationError as e:
            logger.error(f"Failed to emit event: {e}. Event: {event!r}")
            return False

        try:
            self.store.push(QueueKeys.EVENTS, event.to_json())
        except (RedisError, TypeError, ValueError) as e:
            logger.error(f"Failed to emit event {event.id}: {e}", exc_info=True)
            return False

        logger.info(f"Event emitted: {event.type} ({event.id})")

        # Copy so a listener that calls off() doesn't disturb this dispatch
        for listener in list(self._listeners.get(event.type, [])):
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    f"Listener {getattr(listener, '__name__', listener)!s} "
                    f"failed for event {event.type} ({event.id}): {e}",
                    exc_info=True,
                )

        return True

    def on(self, event_type: str, listener: Listener) -> None:
        """Register a listener for an event type."""
        self._listeners[_key(event_type)].append(listener)

    def off(self, event_type: str, listener: Listener) -> None:
        """Remove one registration of listener. Unknown listeners are ignored."""
        listeners = self._listeners.get(_key(event_type))
        if listeners and listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event_type: str) -> int:
        return len(self._listeners.get(_key(event_type), []))


def _key(event_type) -> str:
    # EventType members and plain strings must share one registry slot
    return getattr(event_type, "value", event_type)
