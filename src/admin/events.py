"""Internal event bus.

Async pub/sub for SystemEvents. The event store emits one after every write;
subscribers (the remote forwarder) consume them off a background queue so a
slow subscriber never delays a hook response.

Usage:
    from src.admin.events import emit, subscribe

    subscribe(forward_on_event, event_types=[EventType.EVENT_LOGGED])
    await emit(SystemEvent(event_type=EventType.EVENT_LOGGED, data={...}))
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from src.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

# Type alias for event handler functions
EventHandler = Callable[[SystemEvent], Coroutine[Any, Any, None]]


class EventBus:
    """Queue-backed dispatcher. Without a running worker, emit() dispatches inline."""

    def __init__(self) -> None:
        self._subscribers: list[EventHandler] = []
        self._typed: dict[EventType, list[EventHandler]] = {}
        self._queue: asyncio.Queue[SystemEvent] | None = None
        self._worker: asyncio.Task[None] | None = None

    # ── Registration ─────────────────────────────────────────────────

    def subscribe(self, handler: EventHandler, event_types: list[EventType] | None = None) -> None:
        """Register an event handler.

        Args:
            handler: Async function that accepts a SystemEvent.
            event_types: If provided, handler only receives these event types.
                         If None, handler receives ALL events.
        """
        if event_types is None:
            self._subscribers.append(handler)
            logger.info("Registered global event subscriber: %s", handler.__name__)
            return
        for et in event_types:
            self._typed.setdefault(et, []).append(handler)
        logger.info(
            "Registered event subscriber %s for types: %s",
            handler.__name__,
            [t.value for t in event_types],
        )

    def unsubscribe(self, handler: EventHandler) -> None:
        """Remove a previously registered handler."""
        if handler in self._subscribers:
            self._subscribers.remove(handler)
        for handlers in self._typed.values():
            if handler in handlers:
                handlers.remove(handler)

    def clear(self) -> None:
        self._subscribers.clear()
        self._typed.clear()

    # ── Publishing ───────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def emit(self, event: SystemEvent) -> None:
        """Publish a SystemEvent to all matching subscribers."""
        if self._queue is not None and self.running:
            await self._queue.put(event)
        else:
            await self._dispatch(event)
        logger.debug("Event emitted: %s", event.event_type.value)

    async def _dispatch(self, event: SystemEvent) -> None:
        handlers = list(self._subscribers) + self._typed.get(event.event_type, [])
        if not handlers:
            return

        # Run all handlers concurrently; isolate failures
        results = await asyncio.gather(
            *[handler(event) for handler in handlers],
            return_exceptions=True,
        )
        for handler, result in zip(handlers, results, strict=True):
            if isinstance(result, Exception):
                logger.error(
                    "Handler %s failed for %s: %s", handler.__name__, event.event_type.value, result
                )

    async def _run(self) -> None:
        assert self._queue is not None
        while True:
            event = await self._queue.get()
            try:
                await self._dispatch(event)
            except Exception:
                logger.exception("Error in event worker")
            finally:
                self._queue.task_done()

    # ── Lifecycle ────────────────────────────────────────────────────

    async def start(self) -> None:
        """Start the background worker. Call during FastAPI lifespan startup."""
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._run())
        logger.info(
            "Event bus started with %d global + %d typed subscribers",
            len(self._subscribers),
            sum(len(v) for v in self._typed.values()),
        )

    async def stop(self) -> None:
        """Drain pending events and stop the worker."""
        if self._queue is not None and self.running:
            await self._queue.join()
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        self._queue = None
        logger.info("Event bus stopped")


# Module-level singleton
bus = EventBus()
emit = bus.emit
subscribe = bus.subscribe
unsubscribe = bus.unsubscribe
