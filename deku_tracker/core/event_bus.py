"""
Event Bus - Broadcast of store changes to every open client session

The task store publishes one ChangeEvent per successful mutation. Each
subscriber (one per SSE stream or WebSocket) receives every event
independently. Receivers treat an event as "invalidate and refetch".

Features:
- Thread-safe subscribe/unsubscribe/publish
- Handler failures are isolated and counted, never raised to the publisher
- Bounded per-subscriber queues for asyncio consumers (ChangeSubscription)
- Short event history for diagnostics

Usage:
    bus = EventBus()

    def on_change(event: ChangeEvent):
        print(f"{event.change_type} {event.entity_id}")

    sub_id = bus.subscribe(on_change, subscriber_name="audit")
    bus.publish(ChangeEvent(ChangeType.TASK_ADDED, "..."))
    bus.unsubscribe(sub_id)

    # Inside a coroutine
    async with ChangeSubscription(bus, max_queue=16) as sub:
        event = await sub.get()
"""

import asyncio
import threading
import traceback
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional

from deku_tracker.models.task import ChangeEvent, utc_now
from deku_tracker.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class EventSubscription:
    """Represents one subscriber to store changes."""
    subscription_id: str
    handler: Callable[[ChangeEvent], Any]
    subscriber_name: str = "unknown"
    filter_func: Optional[Callable[[ChangeEvent], bool]] = None
    active: bool = True
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class EventRecord:
    """Record of an event that was published."""
    event: ChangeEvent
    handlers_notified: int
    handlers_failed: List[str]


class EventBus:
    """
    Publish/subscribe broadcast for store change events.

    The publisher is the entity store; subscribers are open client
    connections or in-process observers.
    """

    def __init__(self, enable_history: bool = True, history_max_size: int = 200):
        """
        Initialize the event bus.

        Args:
            enable_history: Whether to keep event history
            history_max_size: Maximum number of events to keep in history
        """
        self._subscriptions: Dict[str, EventSubscription] = {}
        self._lock = threading.Lock()

        self.enable_history = enable_history
        self.event_history: Deque[EventRecord] = deque(maxlen=history_max_size)

        self.stats = {
            "events_published": 0,
            "handlers_executed": 0,
            "handlers_failed": 0,
        }

        logger.debug("Event Bus initialized")

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def subscribe(
        self,
        handler: Callable[[ChangeEvent], Any],
        subscriber_name: str = "unknown",
        filter_func: Optional[Callable[[ChangeEvent], bool]] = None,
    ) -> str:
        """
        Subscribe to every store change.

        Args:
            handler: Function called with each ChangeEvent; must not block
            subscriber_name: Name of the subscriber (for logging)
            filter_func: Optional filter (return True to receive the event)

        Returns:
            subscription_id: Unique subscription ID (for unsubscribing)
        """
        subscription = EventSubscription(
            subscription_id=str(uuid.uuid4()),
            handler=handler,
            subscriber_name=subscriber_name,
            filter_func=filter_func,
        )
        with self._lock:
            self._subscriptions[subscription.subscription_id] = subscription
            total = len(self._subscriptions)

        logger.debug(f"Subscription added: {subscriber_name} (total={total})")
        return subscription.subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """
        Remove a subscription.

        Returns:
            True if the subscription was found and removed
        """
        with self._lock:
            subscription = self._subscriptions.pop(subscription_id, None)

        if subscription is None:
            return False
        subscription.active = False
        logger.debug(f"Subscription removed: {subscription.subscriber_name}")
        return True

    def publish(self, event: ChangeEvent) -> int:
        """
        Deliver an event to all subscribers.

        A failing handler is logged and skipped; the remaining subscribers
        still receive the event and the caller never sees the failure.

        Returns:
            Number of handlers that ran without raising
        """
        with self._lock:
            subscriptions = list(self._subscriptions.values())
            self.stats["events_published"] += 1

        delivered = 0
        failed: List[str] = []

        for subscription in subscriptions:
            if not subscription.active:
                continue
            if subscription.filter_func and not subscription.filter_func(event):
                continue
            try:
                subscription.handler(event)
                delivered += 1
            except Exception as e:
                failed.append(subscription.subscriber_name)
                logger.error(
                    f"Handler {subscription.subscriber_name} failed for "
                    f"{event.change_type.value}: {e}"
                )
                logger.debug(traceback.format_exc())

        with self._lock:
            self.stats["handlers_executed"] += delivered
            self.stats["handlers_failed"] += len(failed)
            if self.enable_history:
                self.event_history.append(
                    EventRecord(event=event, handlers_notified=delivered + len(failed), handlers_failed=failed)
                )

        logger.debug(
            f"Event {event.change_type.value} delivered to {delivered}/{delivered + len(failed)} subscribers"
        )
        return delivered

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {**self.stats, "subscribers": len(self._subscriptions)}


class ChangeSubscription:
    """
    Bridges the bus to one asyncio consumer through a bounded queue.

    Events may be published from any thread; they are handed to the
    consumer's loop with call_soon_threadsafe. When the queue is full the
    event is dropped, since a signal is already pending and the consumer
    will refetch anyway. close() releases the subscription.
    """

    def __init__(
        self,
        bus: EventBus,
        max_queue: int = 16,
        subscriber_name: str = "client",
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._bus = bus
        self._loop = loop or asyncio.get_running_loop()
        self._queue: "asyncio.Queue[ChangeEvent]" = asyncio.Queue(maxsize=max_queue)
        self.subscriber_name = subscriber_name
        self.dropped = 0
        self.closed = False
        self.subscription_id = bus.subscribe(self._on_event, subscriber_name=subscriber_name)

    def _on_event(self, event: ChangeEvent) -> None:
        if self.closed:
            return
        try:
            self._loop.call_soon_threadsafe(self._offer, event)
        except RuntimeError:
            # Consumer loop is gone; nobody will read this queue again.
            self.close()

    def _offer(self, event: ChangeEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def get(self, timeout: Optional[float] = None) -> ChangeEvent:
        """
        Wait for the next change event.

        Raises:
            asyncio.TimeoutError: nothing arrived within ``timeout`` seconds
        """
        if timeout is None:
            return await self._queue.get()
        return await asyncio.wait_for(self._queue.get(), timeout)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._bus.unsubscribe(self.subscription_id)
        logger.debug(f"Subscription closed: {self.subscriber_name} (dropped={self.dropped})")

    async def __aenter__(self) -> "ChangeSubscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
