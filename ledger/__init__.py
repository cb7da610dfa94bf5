"""
Pluggable ledger gateways.

Each gateway exposes the FlightSurety registry contract through the
``LedgerGateway`` interface: an ordered event subscription plus blocking
``call`` / ``send`` / ``query_fee`` operations.  The oracle core never
imports a concrete backend; the server entry point picks one by name.
"""

from ledger.errors import LedgerError, TransactionReverted, TransportError
from ledger.gateway import LedgerGateway, Receipt
from ledger.memory_gateway import MemoryLedger
from ledger.subscription import EventSubscription
from ledger.web3_gateway import Web3Gateway

GATEWAY_REGISTRY: dict[str, type] = {
    "web3": Web3Gateway,
    "memory": MemoryLedger,
}


def get_gateway(name: str, **kwargs) -> LedgerGateway:
    """Instantiate a gateway by name."""
    if name not in GATEWAY_REGISTRY:
        raise KeyError(
            f"Unknown gateway '{name}'. Available: {sorted(GATEWAY_REGISTRY)}"
        )
    return GATEWAY_REGISTRY[name](**kwargs)


__all__ = [
    "EventSubscription",
    "GATEWAY_REGISTRY",
    "LedgerError",
    "LedgerGateway",
    "MemoryLedger",
    "Receipt",
    "TransactionReverted",
    "TransportError",
    "Web3Gateway",
    "get_gateway",
]
