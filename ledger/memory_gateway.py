"""
In-memory FlightSurety ledger.

Simulates the oracle half of the FlightSuretyApp contract so the coordinator
can run end to end without a node:

- registerOracle()          payable; assigns 3 distinct random indexes
- getMyIndexes()            indexes of the calling oracle
- fetchFlightStatus(a,f,t)  opens a request and emits OracleRequest
- submitOracleResponse(...) records a response, emits OracleReport, and
                            emits FlightStatusInfo + closes the request once
                            MIN_RESPONSES oracles agree on a status code
- REGISTRATION_FEE(), isOperational(), getFlightStatus(a,f,t)

Every transaction mines one block.  State is guarded by a single lock so
responders may submit from worker threads.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Any, Optional, Sequence

import numpy as np

from ledger.errors import LedgerError, TransactionReverted
from ledger.gateway import LedgerGateway, Receipt

log = logging.getLogger("ledger.memory")

ETHER = 10**18
REGISTRATION_FEE = 1 * ETHER
MIN_RESPONSES = 3
NUM_INDEX_CATEGORIES = 10
INDEXES_PER_ORACLE = 3


class MemoryLedger(LedgerGateway):
    """Single-process stand-in for the deployed contract.

    Parameters
    ----------
    n_accounts : int
        Number of funded accounts to create (default 40, like Ganache).
    initial_balance : int
        Wei credited to every account.
    registration_fee : int
        Value ``registerOracle`` requires.
    min_responses : int
        Agreeing responses needed to resolve a request.
    num_index_categories : int
        Indexes are drawn from ``range(num_index_categories)``.
    seed : int, optional
        Seed for index assignment and request index draws.
    """

    def __init__(
        self,
        n_accounts: int = 40,
        initial_balance: int = 100 * ETHER,
        registration_fee: int = REGISTRATION_FEE,
        min_responses: int = MIN_RESPONSES,
        num_index_categories: int = NUM_INDEX_CATEGORIES,
        seed: Optional[int] = None,
    ):
        if num_index_categories < INDEXES_PER_ORACLE:
            raise ValueError(
                f"num_index_categories must be >= {INDEXES_PER_ORACLE}, "
                f"got {num_index_categories}"
            )
        self.registration_fee = registration_fee
        self.min_responses = min_responses
        self.num_index_categories = num_index_categories
        self.operational = True

        self._rng = np.random.default_rng(seed)
        self._lock = threading.Lock()
        self._accounts = [f"0x{i:040x}" for i in range(1, n_accounts + 1)]
        self._balances = {a: initial_balance for a in self._accounts}
        self._oracles: dict[str, tuple[int, ...]] = {}
        self._requests: dict[tuple, dict] = {}
        self._flight_status: dict[tuple, int] = {}
        self._logs: list[dict] = []
        self._block = 0
        self._tx_counter = itertools.count(1)

    # ------------------------------------------------------------------
    # LedgerGateway primitives
    # ------------------------------------------------------------------

    def accounts(self) -> list[str]:
        return list(self._accounts)

    def block_number(self) -> int:
        with self._lock:
            return self._block

    def get_logs(self, event_name: str, from_block: int, to_block: int) -> list[dict]:
        with self._lock:
            return [
                dict(entry, args=dict(entry["args"]))
                for entry in self._logs
                if entry["event"] == event_name
                and from_block <= entry["blockNumber"] <= to_block
            ]

    def call(self, method: str, args: Sequence[Any] = (), sender: Optional[str] = None) -> Any:
        handler = getattr(self, f"_call_{method}", None)
        if handler is None:
            raise LedgerError(f"Contract has no view function '{method}'")
        with self._lock:
            return handler(sender, *args)

    def send(
        self,
        method: str,
        args: Sequence[Any] = (),
        sender: Optional[str] = None,
        value: int = 0,
        gas: Optional[int] = None,
    ) -> Receipt:
        handler = getattr(self, f"_tx_{method}", None)
        if handler is None:
            raise LedgerError(f"Contract has no function '{method}'")
        with self._lock:
            if sender not in self._balances:
                raise TransactionReverted(method, f"unknown sender {sender}")
            if self._balances[sender] < value:
                raise TransactionReverted(method, "sender doesn't have enough funds")
            if not self.operational:
                raise TransactionReverted(method, "Contract is currently not operational")
            # Validation failures raise before any state is touched.
            emitted = handler(sender, value, *args)
            self._balances[sender] -= value
            self._block += 1
            for name, event_args in emitted:
                self._logs.append({
                    "event": name,
                    "blockNumber": self._block,
                    "args": event_args,
                })
            return Receipt(
                tx_hash=f"0x{next(self._tx_counter):064x}",
                block_number=self._block,
                events=tuple(name for name, _ in emitted),
            )

    # ------------------------------------------------------------------
    # Test / demo helpers
    # ------------------------------------------------------------------

    def emit(self, event_name: str, args: dict) -> int:
        """Mine a block carrying one raw event.  Returns its block number."""
        with self._lock:
            self._block += 1
            self._logs.append({
                "event": event_name,
                "blockNumber": self._block,
                "args": dict(args),
            })
            return self._block

    def open_request(self, index: int, airline: str, flight: Any, timestamp: int) -> int:
        """Open a request with a chosen index and emit its OracleRequest."""
        with self._lock:
            self._requests[(index, airline, flight, timestamp)] = {
                "requester": None,
                "is_open": True,
                "responses": {},
            }
        return self.emit("OracleRequest", {
            "index": index,
            "airline": airline,
            "flight": flight,
            "timestamp": timestamp,
        })

    # ------------------------------------------------------------------
    # View functions (called with the lock held)
    # ------------------------------------------------------------------

    def _call_REGISTRATION_FEE(self, sender):
        return self.registration_fee

    def _call_isOperational(self, sender):
        return self.operational

    def _call_getMyIndexes(self, sender):
        if sender not in self._oracles:
            raise TransactionReverted("getMyIndexes", "Not registered as an oracle")
        return list(self._oracles[sender])

    def _call_getFlightStatus(self, sender, airline, flight, timestamp):
        return self._flight_status.get((airline, flight, timestamp), 0)

    # ------------------------------------------------------------------
    # Transactions (called with the lock held)
    # Each returns the list of (event_name, args) it emits.
    # ------------------------------------------------------------------

    def _tx_registerOracle(self, sender, value):
        if value < self.registration_fee:
            raise TransactionReverted("registerOracle", "Registration fee is required")
        if sender in self._oracles:
            raise TransactionReverted("registerOracle", "Oracle is already registered")
        indexes = self._rng.choice(
            self.num_index_categories, size=INDEXES_PER_ORACLE, replace=False
        )
        self._oracles[sender] = tuple(int(i) for i in indexes)
        return []

    def _tx_fetchFlightStatus(self, sender, value, airline, flight, timestamp):
        index = int(self._rng.integers(0, self.num_index_categories))
        self._requests[(index, airline, flight, timestamp)] = {
            "requester": sender,
            "is_open": True,
            "responses": {},
        }
        return [("OracleRequest", {
            "index": index,
            "airline": airline,
            "flight": flight,
            "timestamp": timestamp,
        })]

    def _tx_submitOracleResponse(self, sender, value, index, airline, flight, timestamp, status_code):
        method = "submitOracleResponse"
        if index not in self._oracles.get(sender, ()):
            raise TransactionReverted(method, "Index does not match oracle request")
        request = self._requests.get((index, airline, flight, timestamp))
        if request is None or not request["is_open"]:
            raise TransactionReverted(method, "Flight or timestamp do not match oracle request")

        voters = request["responses"].setdefault(status_code, [])
        voters.append(sender)
        emitted = [("OracleReport", {
            "airline": airline,
            "flight": flight,
            "timestamp": timestamp,
            "status": status_code,
        })]
        if len(voters) >= self.min_responses:
            request["is_open"] = False
            self._flight_status[(airline, flight, timestamp)] = status_code
            emitted.append(("FlightStatusInfo", {
                "airline": airline,
                "flight": flight,
                "timestamp": timestamp,
                "status": status_code,
            }))
            log.debug(
                "request resolved airline=%s flight=%s status=%d",
                airline, flight, status_code,
            )
        return emitted
