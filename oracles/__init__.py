"""
Flight-status oracle coordinator.

Registers a pool of simulated oracles with the FlightSurety registry, listens
for ``OracleRequest`` events, and submits one status response per oracle
whose index set matches the request.
"""

from oracles.config import CoordinatorConfig, load_config
from oracles.coordinator import OracleCoordinator, build_gateway
from oracles.dispatcher import RequestDispatcher
from oracles.errors import (
    CoordinatorError,
    EventDecodeFailure,
    RegistrationFailure,
    SubmissionFailure,
)
from oracles.events import StatusRequestEvent, decode_status_request
from oracles.pool import OracleIdentity, OraclePool, OraclePoolManager
from oracles.responder import ResponseAttempt, StatusResponder
from oracles.status_codes import STATUS_CODES, StatusPicker

__all__ = [
    "CoordinatorConfig",
    "CoordinatorError",
    "EventDecodeFailure",
    "OracleCoordinator",
    "OracleIdentity",
    "OraclePool",
    "OraclePoolManager",
    "RegistrationFailure",
    "RequestDispatcher",
    "ResponseAttempt",
    "STATUS_CODES",
    "StatusPicker",
    "StatusRequestEvent",
    "StatusResponder",
    "SubmissionFailure",
    "build_gateway",
    "decode_status_request",
    "load_config",
]
