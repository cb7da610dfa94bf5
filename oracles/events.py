"""Typed status-request events decoded from raw ledger logs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from oracles.errors import EventDecodeFailure

ORACLE_REQUEST_EVENT = "OracleRequest"

_REQUIRED_ARGS = ("index", "airline", "flight", "timestamp")


@dataclass(frozen=True)
class StatusRequestEvent:
    """One ``OracleRequest`` emitted by the registry."""

    index: int
    airline: str
    flight: Union[str, int]
    timestamp: int
    block_number: Optional[int] = None

    def submission_args(self, status_code: int) -> list:
        """Arguments for ``submitOracleResponse`` in contract order."""
        return [self.index, self.airline, self.flight, self.timestamp, status_code]


def _as_int(value: Any, name: str) -> int:
    # bool is an int subclass but never a valid index or timestamp
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise EventDecodeFailure(f"'{name}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise EventDecodeFailure(f"'{name}' must be an integer, got {value!r}") from None


def decode_status_request(raw: Any) -> StatusRequestEvent:
    """Build a ``StatusRequestEvent`` from a raw log entry.

    Accepts either the gateway log shape ``{"event", "blockNumber", "args"}``
    or a bare args mapping.  Raises ``EventDecodeFailure`` when a field is
    missing or has the wrong type.
    """
    if not isinstance(raw, dict):
        raise EventDecodeFailure(f"event must be a mapping, got {type(raw).__name__}")

    args = raw.get("args", raw)
    if not isinstance(args, dict):
        raise EventDecodeFailure(f"event args must be a mapping, got {type(args).__name__}")

    missing = [k for k in _REQUIRED_ARGS if args.get(k) is None]
    if missing:
        raise EventDecodeFailure(f"event missing fields: {missing}")

    index = _as_int(args["index"], "index")
    if index < 0:
        raise EventDecodeFailure(f"'index' must be >= 0, got {index}")

    airline = args["airline"]
    if not isinstance(airline, str) or not airline:
        raise EventDecodeFailure(f"'airline' must be a non-empty string, got {airline!r}")

    flight = args["flight"]
    if isinstance(flight, bool) or not isinstance(flight, (str, int)) or flight == "":
        raise EventDecodeFailure(f"'flight' must be a string or integer, got {flight!r}")

    timestamp = _as_int(args["timestamp"], "timestamp")

    block_number = raw.get("blockNumber")
    return StatusRequestEvent(
        index=index,
        airline=airline,
        flight=flight,
        timestamp=timestamp,
        block_number=_as_int(block_number, "blockNumber") if block_number is not None else None,
    )
