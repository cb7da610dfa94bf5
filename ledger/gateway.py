"""
Ledger gateway interface.

A gateway is the coordinator's only view of the on-chain FlightSurety
registry.  It exposes four operations the oracle core relies on:

  - subscribe(event_name, from_block)  : ordered, restartable event feed
  - call(method, args, sender)         : blocking read
  - send(method, args, sender, value)  : blocking write, returns a Receipt
  - query_fee()                        : current oracle registration fee

All methods except ``subscribe`` block on network I/O.  Async callers push
them onto a worker thread.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from ledger.subscription import EventSubscription

REGISTRATION_FEE_METHOD = "REGISTRATION_FEE"
DEFAULT_GAS_LIMIT = 1_000_000


@dataclass(frozen=True)
class Receipt:
    """Outcome of a mined transaction."""

    tx_hash: str
    block_number: int
    gas_used: int = 0
    events: tuple = field(default_factory=tuple)


class LedgerGateway(ABC):
    """Abstract connection to the flight registry contract."""

    # ------------------------------------------------------------------
    # Primitives each backend implements
    # ------------------------------------------------------------------

    @abstractmethod
    def accounts(self) -> list[str]:
        """Accounts the node will sign for, in node order."""

    @abstractmethod
    def block_number(self) -> int:
        """Latest block height."""

    @abstractmethod
    def get_logs(self, event_name: str, from_block: int, to_block: int) -> list[dict]:
        """Events named *event_name* mined in ``[from_block, to_block]``.

        Each entry is ``{"event": str, "blockNumber": int, "args": dict}``
        and entries are ordered as the chain ordered them.
        """

    @abstractmethod
    def call(self, method: str, args: Sequence[Any] = (), sender: Optional[str] = None) -> Any:
        """Read-only contract call.  Raises ``LedgerError`` on failure."""

    @abstractmethod
    def send(
        self,
        method: str,
        args: Sequence[Any] = (),
        sender: Optional[str] = None,
        value: int = 0,
        gas: Optional[int] = None,
    ) -> Receipt:
        """Submit a transaction and wait for it to be mined.

        Raises ``TransactionReverted`` if the contract rejects it and
        ``TransportError`` if the node cannot be reached.
        """

    # ------------------------------------------------------------------
    # Derived operations
    # ------------------------------------------------------------------

    def query_fee(self) -> int:
        """Registration fee (wei) an oracle must attach to ``registerOracle``."""
        return int(self.call(REGISTRATION_FEE_METHOD))

    def subscribe(
        self,
        event_name: str,
        from_block: int = 0,
        poll_interval: float = 1.0,
        max_backoff: float = 30.0,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> EventSubscription:
        """Open a cancellable feed of *event_name* events starting at *from_block*."""
        return EventSubscription(
            self,
            event_name,
            from_block=from_block,
            poll_interval=poll_interval,
            max_backoff=max_backoff,
            on_error=on_error,
        )
