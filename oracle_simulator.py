"""
Oracle Network Simulator for FlightSurety.

Purpose
-------
Run the whole oracle round trip in one process, with no node: an in-memory
ledger, a registered oracle pool, and a burst of ``fetchFlightStatus``
requests answered by the coordinator.

- simulate_flight_status(): registers the pool, requests a status for each
  flight, waits for the ledger to resolve them, and returns one summary dict
  per flight.

With random answers a request only resolves when enough matching oracles
happen to agree, so some flights may stay unresolved.  Pass
``force_status`` to make every oracle answer the same code.

Usage
-----
    from oracle_simulator import simulate_flight_status

    out = simulate_flight_status(
        flights=["ND1309", "ND1310"],
        pool_size=20,
        force_status=20,        # LATE_AIRLINE: every oracle agrees
        seed=7,
    )
    print(out)
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

from oracles.config import CoordinatorConfig
from oracles.coordinator import OracleCoordinator, build_gateway
from oracles.status_codes import STATUS_NAMES, FixedSequencePicker

DEFAULT_TIMESTAMP = 1893456000


async def simulate_flight_status_async(
    flights: List[str],
    pool_size: int = 20,
    force_status: Optional[int] = None,
    seed: Optional[int] = None,
    timestamp: int = DEFAULT_TIMESTAMP,
    timeout: float = 5.0,
    poll_interval: float = 0.02,
) -> List[Dict[str, Any]]:
    """Async body of ``simulate_flight_status``."""
    config = CoordinatorConfig(
        gateway="memory",
        pool_size=pool_size,
        seed=seed,
        poll_interval=poll_interval,
    ).validate()
    ledger = build_gateway(config)
    picker = FixedSequencePicker([force_status]) if force_status is not None else None
    coordinator = OracleCoordinator(ledger, config, picker=picker)

    task = asyncio.create_task(coordinator.start())
    deadline = time.monotonic() + timeout
    while coordinator.state != "listening" and time.monotonic() < deadline:
        await asyncio.sleep(poll_interval)

    accounts = ledger.accounts()
    requester, airline = accounts[0], accounts[1]
    for flight in flights:
        ledger.send("fetchFlightStatus", [airline, flight, timestamp], sender=requester)

    def resolved() -> Dict[Any, int]:
        infos = ledger.get_logs("FlightStatusInfo", 0, ledger.block_number())
        return {e["args"]["flight"]: e["args"]["status"] for e in infos}

    # Wait until every flight is resolved and all responses have landed.
    while time.monotonic() < deadline:
        if len(resolved()) == len(set(flights)) and coordinator.dispatcher.in_flight == 0:
            break
        await asyncio.sleep(poll_interval)

    await coordinator.stop(drain_timeout=max(deadline - time.monotonic(), 0.0))
    await task

    statuses = resolved()
    reports = ledger.get_logs("OracleReport", 0, ledger.block_number())
    requests = {
        e["args"]["flight"]: e["args"]["index"]
        for e in ledger.get_logs("OracleRequest", 0, ledger.block_number())
    }

    results = []
    for flight in flights:
        status = statuses.get(flight)
        results.append({
            "flight": flight,
            "airline": airline,
            "timestamp": timestamp,
            "request_index": requests.get(flight),
            "oracles_registered": len(coordinator.pool),
            "reports": sum(1 for r in reports if r["args"]["flight"] == flight),
            "resolved": status is not None,
            "status_code": status,
            "status": STATUS_NAMES.get(status, "UNRESOLVED"),
        })
    return results


def simulate_flight_status(
    flights: List[str],
    pool_size: int = 20,
    force_status: Optional[int] = None,
    seed: Optional[int] = None,
    timestamp: int = DEFAULT_TIMESTAMP,
    timeout: float = 5.0,
) -> List[Dict[str, Any]]:
    """
    Simulate oracle resolution of flight status requests (NO node needed).

    Parameters
    ----------
    flights : list of str
        Flight codes to request a status for.
    pool_size : int
        Oracles to register.
    force_status : int, optional
        If given, every oracle answers this status code.
    seed : int, optional
        Seed for index assignment and status picks.
    timeout : float
        Seconds to wait for resolution before reporting.

    Returns
    -------
    list of dicts, one per flight, with the resolved status (if any).
    """
    return asyncio.run(simulate_flight_status_async(
        flights,
        pool_size=pool_size,
        force_status=force_status,
        seed=seed,
        timestamp=timestamp,
        timeout=timeout,
    ))


if __name__ == "__main__":
    print("=" * 70)
    print("ORACLE NETWORK SIMULATOR")
    print("Register oracles, request flight statuses, watch them resolve")
    print("=" * 70)

    demo_flights = ["ND1309", "ND1310", "ND1311"]

    print("\n--- RANDOM ANSWERS ---")
    for out in simulate_flight_status(demo_flights, seed=7):
        print(f"  {out['flight']}: index {out['request_index']} | "
              f"{out['reports']} reports | {out['status']}")

    print("\n--- FORCED LATE_AIRLINE ---")
    for out in simulate_flight_status(demo_flights, force_status=20, seed=7):
        print(f"  {out['flight']}: index {out['request_index']} | "
              f"{out['reports']} reports | {out['status']}")
