"""
Oracle pool: identities, the shared registry, and registration.

Registration follows the contract's protocol for every candidate account:

  1. query the current registration fee
  2. send ``registerOracle`` carrying exactly that fee
  3. call ``getMyIndexes`` as the oracle to learn its index triplet

A failure for one account is logged and that account is skipped for the
rest of the run; the others carry on.
"""

from __future__ import annotations

import asyncio
import logging
import numbers
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional

from ledger.errors import LedgerError
from ledger.gateway import DEFAULT_GAS_LIMIT, LedgerGateway
from oracles.errors import RegistrationFailure

log = logging.getLogger("oracles.pool")

INDEXES_PER_ORACLE = 3
DEFAULT_INDEX_CATEGORIES = 10


# ============================================================================
# Identity
# ============================================================================

@dataclass(frozen=True)
class OracleIdentity:
    """A registered oracle: ledger account plus its assigned index set."""

    account: str
    indexes: frozenset

    def matches(self, index: int) -> bool:
        return index in self.indexes


def _as_index(account: str, value: Any, raw: Any) -> int:
    # numpy / web3 integer types are Integral; floats and bools never are indexes
    if isinstance(value, bool):
        raise RegistrationFailure(account, f"indexes are not integers: {raw!r}")
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
    raise RegistrationFailure(account, f"indexes are not integers: {raw!r}")


def validate_indexes(
    account: str,
    raw: Any,
    num_index_categories: int = DEFAULT_INDEX_CATEGORIES,
) -> frozenset:
    """Check the triplet returned by ``getMyIndexes``.

    Raises ``RegistrationFailure`` unless *raw* is a sequence of exactly
    ``INDEXES_PER_ORACLE`` distinct integers in ``[0, num_index_categories)``.
    """
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise RegistrationFailure(account, f"indexes are not a sequence: {raw!r}")
    values = [_as_index(account, v, raw) for v in raw]

    if len(values) != INDEXES_PER_ORACLE:
        raise RegistrationFailure(
            account, f"expected {INDEXES_PER_ORACLE} indexes, got {len(values)}"
        )
    indexes = frozenset(values)
    if len(indexes) != INDEXES_PER_ORACLE:
        raise RegistrationFailure(account, f"indexes are not distinct: {values}")
    out_of_range = [v for v in values if not 0 <= v < num_index_categories]
    if out_of_range:
        raise RegistrationFailure(
            account,
            f"indexes {out_of_range} outside [0, {num_index_categories})",
        )
    return indexes


# ============================================================================
# Pool registry
# ============================================================================

class OraclePool:
    """Append-only registry of oracle identities.

    Writers take a lock; readers get an immutable snapshot tuple that is
    swapped in atomically on every add, so the dispatcher can iterate while
    registrations are still arriving.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._by_account: dict[str, OracleIdentity] = {}
        self._snapshot: tuple[OracleIdentity, ...] = ()

    def add(self, oracle: OracleIdentity) -> None:
        with self._lock:
            if oracle.account in self._by_account:
                raise ValueError(f"Oracle '{oracle.account}' is already in the pool")
            self._by_account[oracle.account] = oracle
            self._snapshot = self._snapshot + (oracle,)

    def snapshot(self) -> tuple[OracleIdentity, ...]:
        return self._snapshot

    def matching(self, index: int) -> list[OracleIdentity]:
        """Oracles in the current snapshot whose index set contains *index*."""
        return [o for o in self._snapshot if o.matches(index)]

    def __len__(self) -> int:
        return len(self._snapshot)


# ============================================================================
# Registration
# ============================================================================

class OraclePoolManager:
    """Registers simulated oracles with the ledger and records their indexes.

    Parameters
    ----------
    gateway : LedgerGateway
        Ledger connection used for fee query, registration and index lookup.
    pool : OraclePool, optional
        Registry to fill.  A fresh one is created if omitted.
    account_offset : int
        Position in ``gateway.accounts()`` of the first oracle account.
        Lower accounts belong to the owner, airlines and passengers.
    num_index_categories : int
        Upper bound (exclusive) for valid indexes.
    gas_limit : int
        Gas attached to ``registerOracle``.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        pool: Optional[OraclePool] = None,
        account_offset: int = 20,
        num_index_categories: int = DEFAULT_INDEX_CATEGORIES,
        gas_limit: int = DEFAULT_GAS_LIMIT,
    ):
        if account_offset < 0:
            raise ValueError(f"account_offset must be >= 0, got {account_offset}")
        self.gateway = gateway
        self.pool = pool if pool is not None else OraclePool()
        self.account_offset = account_offset
        self.num_index_categories = num_index_categories
        self.gas_limit = gas_limit

    def candidate_accounts(self, pool_size: int) -> list[str]:
        accounts = self.gateway.accounts()
        candidates = accounts[self.account_offset:self.account_offset + pool_size]
        if len(candidates) < pool_size:
            log.warning(
                "only %d of %d oracle accounts available (node has %d, offset %d)",
                len(candidates), pool_size, len(accounts), self.account_offset,
            )
        return candidates

    def register_one(self, account: str) -> OracleIdentity:
        """Register *account* and add it to the pool.  Blocking.

        Raises ``RegistrationFailure`` if any ledger step fails or the
        returned index set is malformed.
        """
        try:
            fee = self.gateway.query_fee()
            self.gateway.send(
                "registerOracle", sender=account, value=fee, gas=self.gas_limit
            )
            raw_indexes = self.gateway.call("getMyIndexes", sender=account)
        except LedgerError as exc:
            raise RegistrationFailure(account, str(exc)) from exc

        oracle = OracleIdentity(
            account=account,
            indexes=validate_indexes(account, raw_indexes, self.num_index_categories),
        )
        try:
            self.pool.add(oracle)
        except ValueError as exc:
            raise RegistrationFailure(account, str(exc)) from exc
        log.info(
            "oracle registered account=%s indexes=%s",
            account, sorted(oracle.indexes),
        )
        return oracle

    async def register_all(self, pool_size: int) -> dict[str, OracleIdentity]:
        """Register up to *pool_size* oracles concurrently.

        Returns the identities that registered successfully, keyed by
        account.  Failed accounts are logged and left out.
        """
        if pool_size < 0:
            raise ValueError(f"pool_size must be >= 0, got {pool_size}")
        try:
            candidates = await asyncio.to_thread(self.candidate_accounts, pool_size)
        except LedgerError as exc:
            log.error("cannot list oracle accounts, no oracles registered: %s", exc)
            return {}

        results = await asyncio.gather(
            *(self._register_isolated(account) for account in candidates)
        )
        registered = {o.account: o for o in results if o is not None}
        log.info(
            "oracle registration finished registered=%d failed=%d",
            len(registered), len(candidates) - len(registered),
        )
        return registered

    async def _register_isolated(self, account: str) -> Optional[OracleIdentity]:
        try:
            return await asyncio.to_thread(self.register_one, account)
        except RegistrationFailure as exc:
            log.warning(
                "oracle registration failed account=%s reason=%s",
                exc.account, exc.reason,
            )
            return None
