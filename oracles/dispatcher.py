"""
Request dispatcher.

Consumes ``OracleRequest`` events in delivery order and, for each one, starts
an independent responder task for every pooled oracle whose index set
contains the request index.  Responder tasks are never awaited on the
consumption path, so a slow submission for one event cannot delay the next.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterable, Optional

from oracles.errors import EventDecodeFailure
from oracles.events import StatusRequestEvent, decode_status_request
from oracles.pool import OraclePool
from oracles.responder import StatusResponder

log = logging.getLogger("oracles.dispatcher")


class RequestDispatcher:
    """Fans status requests out to matching oracles."""

    def __init__(self, responder: StatusResponder):
        self.responder = responder
        self._tasks: set[asyncio.Task] = set()
        self._events: Optional[AsyncIterable] = None
        self._stopping = False
        self.events_received = 0
        self.events_dropped = 0
        self.responses_launched = 0

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------

    def dispatch(self, event: StatusRequestEvent, pool: OraclePool) -> list[asyncio.Task]:
        """Start one responder task per matching oracle and return them.

        Must be called from a running event loop.  Does not wait for any of
        the tasks it starts.
        """
        log.info(
            "status request received index=%d airline=%s flight=%s timestamp=%d block=%s",
            event.index, event.airline, event.flight, event.timestamp, event.block_number,
        )
        tasks = []
        for oracle in pool.matching(event.index):
            task = asyncio.create_task(
                self.responder.respond(oracle, event),
                name=f"respond-{oracle.account}-{event.index}",
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            tasks.append(task)
        self.responses_launched += len(tasks)
        log.debug("status request index=%d matched oracles=%d", event.index, len(tasks))
        return tasks

    def handle(self, raw: Any, pool: OraclePool) -> list[asyncio.Task]:
        """Decode one raw event and dispatch it; malformed events are dropped."""
        try:
            event = decode_status_request(raw)
        except EventDecodeFailure as exc:
            self.events_dropped += 1
            log.warning("dropping malformed status request: %s raw=%r", exc, raw)
            return []
        self.events_received += 1
        return self.dispatch(event, pool)

    async def run(self, events: AsyncIterable, pool: OraclePool) -> None:
        """Consume *events* until the stream ends or ``stop()`` is called."""
        if self._stopping:
            return
        self._events = events
        log.info("dispatcher listening for status requests oracles=%d", len(pool))
        async for raw in events:
            if self._stopping:
                break
            self.handle(raw, pool)
        log.info(
            "dispatcher stopped received=%d dropped=%d responses=%d in_flight=%d",
            self.events_received, self.events_dropped,
            self.responses_launched, self.in_flight,
        )

    def stop(self) -> None:
        """Stop consuming.  Closes the event stream when it supports it."""
        self._stopping = True
        close = getattr(self._events, "close", None)
        if callable(close):
            close()

    async def drain(self, timeout: Optional[float] = None) -> int:
        """Wait up to *timeout* seconds for in-flight responses.

        Whatever is still running afterwards is cancelled.  Returns the
        number of tasks cancelled.
        """
        pending_tasks = set(self._tasks)
        if not pending_tasks:
            return 0
        _, pending = await asyncio.wait(pending_tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            log.warning("abandoned %d in-flight oracle responses", len(pending))
        return len(pending)
