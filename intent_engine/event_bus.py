"""
Synchronous publish/subscribe for intent events.

Subscribers register for an exact event type ("spawn:start"), a bare intent
id ("spawn", all phases) or every event. Delivery happens in that order and
in subscription order within each channel. A failing subscriber is reported
to the error hook and never stops delivery to the others.
"""

from typing import Callable, Iterable, Optional

from .logger import get_logger
from .events import IntentEvent, split_event_type

logger = get_logger("EventBus")

EventCallback = Callable[[IntentEvent], None]
ErrorHandler = Callable[[Exception, IntentEvent], None]
Unsubscribe = Callable[[], None]


def _log_subscriber_error(error: Exception, event: IntentEvent) -> None:
    logger.error(f"Error in event callback for '{event.type}': {error}")


class _Subscription:
    """Identity wrapper so the same callback can subscribe twice."""

    __slots__ = ("callback",)

    def __init__(self, callback: EventCallback):
        self.callback = callback


class EventBus:
    """Typed event fan-out with per-subscriber failure isolation."""

    def __init__(self, on_error: Optional[ErrorHandler] = None):
        """
        Initialize an empty bus.

        Args:
            on_error: Called with (exception, event) when a subscriber raises.
                Defaults to logging at ERROR.
        """
        self._on_error = on_error or _log_subscriber_error
        # dicts used as insertion-ordered sets
        self._channels: dict[str, dict[_Subscription, None]] = {}
        self._any: dict[_Subscription, None] = {}

    def on(self, event_type: str, callback: EventCallback) -> Unsubscribe:
        """
        Subscribe to an event type or a bare intent id.

        Returns:
            Function removing this subscription; calling it twice is harmless.
        """
        subscription = _Subscription(callback)
        channel = self._channels.setdefault(event_type, {})
        channel[subscription] = None

        def unsubscribe() -> None:
            subscribers = self._channels.get(event_type)
            if subscribers is None:
                return
            subscribers.pop(subscription, None)
            if not subscribers:
                del self._channels[event_type]

        return unsubscribe

    def on_any(self, callback: EventCallback) -> Unsubscribe:
        subscription = _Subscription(callback)
        self._any[subscription] = None

        def unsubscribe() -> None:
            self._any.pop(subscription, None)

        return unsubscribe

    def subscribe_many(self, handlers: dict[str, EventCallback]) -> Unsubscribe:
        """Subscribe several handlers at once; the result removes all of them."""
        unsubscribers = [self.on(event_type, callback) for event_type, callback in handlers.items()]

        def unsubscribe() -> None:
            for remove in unsubscribers:
                remove()

        return unsubscribe

    def emit(self, event: IntentEvent) -> None:
        """Deliver an event to typed, intent-level, then catch-all subscribers."""
        intent_id, phase = split_event_type(event.type)

        targets = list(self._channels.get(event.type, {}))
        if phase:
            targets.extend(self._channels.get(intent_id, {}))
        targets.extend(self._any)

        for subscription in targets:
            try:
                subscription.callback(event)
            except Exception as e:
                self._report(e, event)

    def emit_all(self, events: Iterable[IntentEvent]) -> None:
        for event in events:
            self.emit(event)

    def _report(self, error: Exception, event: IntentEvent) -> None:
        try:
            self._on_error(error, event)
        except Exception as e:
            logger.error(f"Error in event error handler: {e}")

    def clear(self) -> None:
        self._channels.clear()
        self._any.clear()

    @property
    def size(self) -> int:
        """Total number of live subscriptions."""
        return sum(len(subscribers) for subscribers in self._channels.values()) + len(self._any)

    def __len__(self) -> int:
        return self.size
