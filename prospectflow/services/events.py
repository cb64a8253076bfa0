"""Pipeline events and their dispatch.

The core never calls the next pipeline step directly. It emits an event
("this lead needs analysis", "this lead needs a decision") and returns; a
dispatcher decides when and how the step runs. ``emit`` must never block or
raise into the caller.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

LEAD_NEEDS_ANALYSIS = "lead.needs_analysis"
LEAD_NEEDS_DECISION = "lead.needs_decision"


@dataclass(frozen=True)
class PipelineEvent:
    kind: str
    tenant_id: UUID
    lead_id: UUID
    payload: dict[str, Any] = field(default_factory=dict)


class EventQueue(Protocol):
    def emit(self, event: PipelineEvent) -> None:
        ...


class InMemoryEventQueue:
    """Records events without running anything (tests, CLI dry runs)."""

    def __init__(self):
        self.events: list[PipelineEvent] = []

    def emit(self, event: PipelineEvent) -> None:
        self.events.append(event)

    def of_kind(self, kind: str) -> list[PipelineEvent]:
        return [e for e in self.events if e.kind == kind]


Handler = Callable[[AsyncSession, PipelineEvent, EventQueue], Awaitable[Any]]


class EventDispatcher:
    """Runs each event's handler as its own asyncio task with its own session.

    Tasks are tracked so they are not garbage-collected mid-flight and so
    shutdown can wait for them. Handler failures are logged, never re-raised.
    """

    def __init__(self, session_factory, handlers: dict[str, Handler] | None = None):
        self.session_factory = session_factory
        self.handlers: dict[str, Handler] = dict(handlers or {})
        self._tasks: set[asyncio.Task] = set()

    def register(self, kind: str, handler: Handler) -> None:
        self.handlers[kind] = handler

    def emit(self, event: PipelineEvent) -> None:
        handler = self.handlers.get(event.kind)
        if handler is None:
            logger.warning("No handler for event %s (lead %s)", event.kind, event.lead_id)
            return
        try:
            task = asyncio.get_running_loop().create_task(self._run(handler, event))
        except RuntimeError:
            logger.error("Cannot dispatch %s for lead %s: no running event loop", event.kind, event.lead_id)
            return
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("Dispatched %s for lead %s", event.kind, event.lead_id)

    async def _run(self, handler: Handler, event: PipelineEvent) -> None:
        async with self.session_factory() as db:
            try:
                await handler(db, event, self)
            except Exception:
                logger.exception("Handler for %s failed (lead %s)", event.kind, event.lead_id)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for in-flight handlers (used on shutdown and by the CLI)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
