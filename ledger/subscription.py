"""Polling event subscription with resubscribe-on-failure."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import TYPE_CHECKING, Callable, Optional

from ledger.errors import LedgerError

if TYPE_CHECKING:
    from ledger.gateway import LedgerGateway

log = logging.getLogger("ledger.subscription")


class EventSubscription:
    """Ordered, cancellable async iterator over one contract event.

    The subscription polls ``gateway.block_number()`` and
    ``gateway.get_logs()`` on a worker thread and yields raw event dicts in
    chain order.  A transport failure never ends the iteration: it is handed
    to *on_error* (the error channel), the poll backs off exponentially up to
    *max_backoff* seconds, and polling resumes from the first block not yet
    delivered.

    Parameters
    ----------
    gateway : LedgerGateway
        Backend providing ``block_number`` and ``get_logs``.
    event_name : str
        Contract event to follow, e.g. ``"OracleRequest"``.
    from_block : int
        First block to read (inclusive).
    poll_interval : float
        Seconds to wait when a poll returns nothing new.
    max_backoff : float
        Upper bound on the wait after consecutive failures.
    on_error : callable(Exception), optional
        Receives every transport failure.  Defaults to a log warning.
    """

    def __init__(
        self,
        gateway: "LedgerGateway",
        event_name: str,
        from_block: int = 0,
        poll_interval: float = 1.0,
        max_backoff: float = 30.0,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        if from_block < 0:
            raise ValueError(f"from_block must be >= 0, got {from_block}")
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {poll_interval}")
        self._gateway = gateway
        self.event_name = event_name
        self.next_block = from_block
        self.poll_interval = poll_interval
        self.max_backoff = max_backoff
        self._on_error = on_error
        self._buffer: deque = deque()
        self._closed = False
        self._closed_event = asyncio.Event()
        self._failures = 0
        self.error_count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop the feed.  A pending ``__anext__`` returns promptly."""
        self._closed = True
        self._closed_event.set()

    def __aiter__(self) -> "EventSubscription":
        return self

    async def __anext__(self) -> dict:
        while True:
            if self._closed:
                raise StopAsyncIteration
            if self._buffer:
                return self._buffer.popleft()
            await self._poll()

    # ------------------------------------------------------------------

    async def _poll(self) -> None:
        try:
            head = await asyncio.to_thread(self._gateway.block_number)
            if head >= self.next_block:
                logs = await asyncio.to_thread(
                    self._gateway.get_logs, self.event_name, self.next_block, head
                )
                self._buffer.extend(logs)
                self.next_block = head + 1
            self._failures = 0
        except LedgerError as exc:
            self._failures += 1
            self._report(exc)
            await self._sleep(min(self.poll_interval * 2 ** self._failures, self.max_backoff))
            return

        if not self._buffer:
            await self._sleep(self.poll_interval)

    def _report(self, exc: Exception) -> None:
        self.error_count += 1
        if self._on_error is not None:
            self._on_error(exc)
        else:
            log.warning(
                "subscription transport failure event=%s next_block=%d attempt=%d error=%s",
                self.event_name, self.next_block, self._failures, exc,
            )

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._closed_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
