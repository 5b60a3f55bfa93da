"""Async event bus bridging session host callbacks to the event router.

CLI reader tasks fire events via callback. The EventBus queues them on a
single ordered channel; one consumer pulls them off one at a time.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable

from aitherflow.adapters.events import CliEvent
from aitherflow.adapters.subscription import Subscription

logger = logging.getLogger(__name__)

EventHandler = Callable[[CliEvent], None]


class EventBus:
    """Async queue bridging CLI session events to a single consumer."""

    def __init__(self, maxsize: int = 5000) -> None:
        self._queue: asyncio.Queue[CliEvent] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    async def emit(self, event: CliEvent) -> None:
        """Queue a typed event."""
        if self._closed:
            return
        try:
            # Use await put() with timeout to add backpressure instead of dropping
            await asyncio.wait_for(self._queue.put(event), timeout=30.0)
        except asyncio.TimeoutError:
            logger.error(
                "EventBus queue blocked for 30s, dropping: %s (queue size: %d)",
                event.event_type,
                self._queue.qsize(),
            )

    async def consume(self) -> AsyncIterator[CliEvent]:
        """Yield events as they arrive. Stops on close()."""
        while not self._closed:
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=0.5)
            except asyncio.TimeoutError:
                continue
            try:
                yield event
            finally:
                self._queue.task_done()

    def subscribe(self, handler: EventHandler) -> Subscription:
        """Deliver every event to *handler*, one at a time, in arrival order.

        Must be called from a running event loop. Disposing the returned
        handle stops delivery.
        """
        task = asyncio.get_running_loop().create_task(
            self._pump(handler), name="event-bus-consumer",
        )
        return Subscription(task.cancel)

    async def _pump(self, handler: EventHandler) -> None:
        async for event in self.consume():
            try:
                handler(event)
            except Exception:
                logger.exception("Error processing event: %s", event.event_type)

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    def close(self) -> None:
        """Stop the consumer loop permanently."""
        self._closed = True
