"""
In-process fan-out of committed team changes.

The team service publishes one ChangeEvent per committed mutation; every
open push subscription (an SSE stream or an in-process channel) receives
it through its own bounded queue.
"""

import asyncio
import logging
import threading
from typing import List, Optional

from .events import ChangeEvent

logger = logging.getLogger(__name__)


class Subscription:
    """One subscriber's queue, bound to the event loop that created it."""

    def __init__(self, loop: asyncio.AbstractEventLoop, maxsize: int):
        self.loop = loop
        self.queue: "asyncio.Queue[Optional[ChangeEvent]]" = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    async def get(self) -> Optional[ChangeEvent]:
        """Next event, or None once the broker has dropped this subscription."""
        if self.closed and self.queue.empty():
            return None
        return await self.queue.get()


class ChangeBroker:
    """Delivers published change events to every live subscription.

    publish() may be called from any thread; delivery always happens on
    the subscriber's own loop.
    """

    def __init__(self, max_queue_size: int = 1024):
        self.max_queue_size = max_queue_size
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def subscribe(self) -> Subscription:
        """Register a subscription on the running event loop."""
        subscription = Subscription(asyncio.get_running_loop(), self.max_queue_size)
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug("Change subscription added (%d open)", self.subscriber_count)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription; unknown subscriptions are ignored."""
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        subscription.closed = True

    def publish(self, event: ChangeEvent) -> None:
        """Queue an event for every subscriber."""
        with self._lock:
            subscriptions = list(self._subscriptions)

        for subscription in subscriptions:
            if subscription.loop.is_closed():
                self.unsubscribe(subscription)
                continue
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None
            if running is subscription.loop:
                self._deliver(subscription, event)
            else:
                subscription.loop.call_soon_threadsafe(self._deliver, subscription, event)

    def close(self) -> None:
        """Drop every subscription, waking their readers."""
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            self._drop(subscription)

    def _deliver(self, subscription: Subscription, event: ChangeEvent) -> None:
        if subscription.closed:
            return
        try:
            subscription.queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "Change subscriber fell %d events behind; dropping it",
                self.max_queue_size,
            )
            self._drop(subscription)

    def _drop(self, subscription: Subscription) -> None:
        self.unsubscribe(subscription)

        def wake() -> None:
            # Pending events still drain unless the queue has no room left
            if subscription.queue.full():
                while not subscription.queue.empty():
                    subscription.queue.get_nowait()
            subscription.queue.put_nowait(None)

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is subscription.loop:
            wake()
        elif not subscription.loop.is_closed():
            subscription.loop.call_soon_threadsafe(wake)
