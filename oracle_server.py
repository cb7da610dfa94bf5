#!/usr/bin/env python3
"""
FlightSurety oracle server.

Usage:
    python oracle_server.py --config src/server/config.json
    python oracle_server.py --gateway memory --pool-size 20 --seed 7
    python oracle_server.py --config config.json --no-http

Registers the oracle pool, then answers OracleRequest events until
interrupted.  Unless --no-http is given, a liveness endpoint is served on
--port (GET /health, GET /api).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from typing import Optional

from oracles.config import CoordinatorConfig, load_config
from oracles.coordinator import OracleCoordinator, build_gateway

log = logging.getLogger("oracle-server")


# ============================================================================
# CLI
# ============================================================================

def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="FlightSurety oracle server")
    p.add_argument("--config", help="Deployment JSON (as written by the migration)")
    p.add_argument("--network", default="localhost", help="Network key in --config")
    p.add_argument("--gateway", choices=["web3", "memory"], help="Ledger backend")
    p.add_argument("--pool-size", type=int, help="Number of oracles to register")
    p.add_argument("--account-offset", type=int, help="First node account used as an oracle")
    p.add_argument("--from-block", type=int, help="First block to read events from")
    p.add_argument("--seed", type=int, help="Seed for status code picks")
    p.add_argument("--host", help="Liveness endpoint bind address")
    p.add_argument("--port", type=int, help="Liveness endpoint port")
    p.add_argument("--no-http", action="store_true", help="Do not serve the liveness endpoint")
    p.add_argument("--log-level", default="INFO", help="Logging level (default INFO)")
    return p.parse_args(argv)


def apply_overrides(config: CoordinatorConfig, args: argparse.Namespace) -> CoordinatorConfig:
    """CLI flags win over file and environment settings."""
    overrides = {
        "gateway": args.gateway,
        "pool_size": args.pool_size,
        "account_offset": args.account_offset,
        "from_block": args.from_block,
        "seed": args.seed,
        "host": args.host,
        "port": args.port,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    return replace(config, **overrides).validate()


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# ============================================================================
# Runners
# ============================================================================

async def run_coordinator(coordinator: OracleCoordinator) -> None:
    try:
        await coordinator.start()
    finally:
        await coordinator.stop()


async def run_with_http(coordinator: OracleCoordinator, host: str, port: int) -> None:
    """Serve /health alongside the coordinator; Ctrl-C stops both."""
    import uvicorn

    from oracles.health import create_app

    server = uvicorn.Server(uvicorn.Config(
        create_app(coordinator), host=host, port=port, log_level="warning",
    ))
    coordinator_task = asyncio.create_task(coordinator.start(), name="coordinator")
    try:
        await server.serve()
    finally:
        await coordinator.stop()
        await coordinator_task


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_config(args.config, args.network, validate=False)
        config = apply_overrides(config, args)
        gateway = build_gateway(config)
    except (OSError, ValueError) as exc:
        log.error("invalid configuration: %s", exc)
        return 2

    coordinator = OracleCoordinator(gateway, config)
    log.info(
        "starting oracle server gateway=%s pool_size=%d account_offset=%d",
        config.gateway, config.pool_size, config.account_offset,
    )

    try:
        if args.no_http:
            asyncio.run(run_coordinator(coordinator))
        else:
            log.info("liveness endpoint on http://%s:%d/health", config.host, config.port)
            asyncio.run(run_with_http(coordinator, config.host, config.port))
    except KeyboardInterrupt:
        log.info("interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
