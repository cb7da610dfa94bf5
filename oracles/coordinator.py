"""
Oracle response coordinator: the process-level wiring.

    gateway ──► OraclePoolManager.register_all()   (startup)
            ──► subscribe("OracleRequest")
                    └─► RequestDispatcher.run()
                            └─► StatusResponder.respond()  (one task per match)
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from ledger import LedgerGateway, get_gateway
from oracles.config import CoordinatorConfig
from oracles.dispatcher import RequestDispatcher
from oracles.events import ORACLE_REQUEST_EVENT
from oracles.pool import OraclePool, OraclePoolManager
from oracles.responder import StatusResponder
from oracles.status_codes import StatusPicker

log = logging.getLogger("oracles.coordinator")


def build_gateway(config: CoordinatorConfig) -> LedgerGateway:
    """Instantiate the gateway named by ``config.gateway``."""
    if config.gateway == "web3":
        return get_gateway(
            "web3",
            rpc_url=config.rpc_url,
            contract_address=config.app_address,
            abi_path=config.abi_path,
            gas_limit=config.gas_limit,
        )
    if config.gateway == "memory":
        return get_gateway(
            "memory",
            n_accounts=max(40, config.account_offset + config.pool_size),
            num_index_categories=config.num_index_categories,
            seed=config.seed,
        )
    return get_gateway(config.gateway)


class OracleCoordinator:
    """Registers the oracle pool, then answers status requests until stopped.

    Parameters
    ----------
    gateway : LedgerGateway
        Ledger connection shared by every component.
    config : CoordinatorConfig, optional
        Pool size, account range, polling and gas settings.
    picker : callable() -> int, optional
        Status code source for the responder.  Defaults to a
        ``StatusPicker`` seeded from ``config.seed``.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        config: Optional[CoordinatorConfig] = None,
        picker: Optional[Callable[[], int]] = None,
    ):
        self.config = config or CoordinatorConfig()
        self.gateway = gateway
        self.pool = OraclePool()
        self.pool_manager = OraclePoolManager(
            gateway,
            self.pool,
            account_offset=self.config.account_offset,
            num_index_categories=self.config.num_index_categories,
            gas_limit=self.config.gas_limit,
        )
        self.responder = StatusResponder(
            gateway,
            picker=picker if picker is not None else StatusPicker(seed=self.config.seed),
            gas_limit=self.config.gas_limit,
            max_workers=self.config.max_workers,
        )
        self.dispatcher = RequestDispatcher(self.responder)
        self.subscription = None
        self.state = "created"
        self.started_at: Optional[float] = None
        self._stop_requested = False

    async def start(self) -> None:
        """Register oracles, then consume status requests until ``stop()``."""
        self.started_at = time.time()
        self.state = "registering"
        await self.pool_manager.register_all(self.config.pool_size)
        if self._stop_requested:
            self.state = "stopped"
            return

        self.subscription = self.gateway.subscribe(
            ORACLE_REQUEST_EVENT,
            from_block=self.config.from_block,
            poll_interval=self.config.poll_interval,
            max_backoff=self.config.max_backoff,
        )
        self.state = "listening"
        try:
            await self.dispatcher.run(self.subscription, self.pool)
        finally:
            self.state = "stopped"

    async def stop(self, drain_timeout: Optional[float] = 5.0) -> None:
        """Stop listening, give in-flight responses *drain_timeout* seconds."""
        self._stop_requested = True
        self.dispatcher.stop()
        abandoned = await self.dispatcher.drain(drain_timeout)
        self.responder.close()
        log.info("coordinator stopped abandoned_responses=%d", abandoned)

    def status(self) -> dict:
        """Counters for the liveness endpoint."""
        subscription = self.subscription
        return {
            "state": self.state,
            "uptime_s": round(time.time() - self.started_at, 1) if self.started_at else 0.0,
            "oracles_registered": len(self.pool),
            "events_received": self.dispatcher.events_received,
            "events_dropped": self.dispatcher.events_dropped,
            "responses_launched": self.dispatcher.responses_launched,
            "responses_submitted": self.responder.submitted,
            "responses_failed": self.responder.failed,
            "responses_in_flight": self.dispatcher.in_flight,
            "next_block": subscription.next_block if subscription is not None else None,
            "transport_errors": subscription.error_count if subscription is not None else 0,
        }
