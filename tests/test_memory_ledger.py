"""Tests for the in-memory FlightSurety ledger."""

import pytest

from ledger import GATEWAY_REGISTRY, MemoryLedger, get_gateway
from ledger.errors import LedgerError, TransactionReverted
from ledger.memory_gateway import ETHER, REGISTRATION_FEE

AIRLINE = "0x" + "0" * 39 + "2"
FLIGHT = "ND1309"
TS = 1893456000


def _registered(ledger, account, indexes):
    """Register *account* and force its index triplet."""
    ledger.send("registerOracle", sender=account, value=ledger.query_fee())
    ledger._oracles[account] = tuple(indexes)


@pytest.fixture
def ledger():
    return MemoryLedger(seed=1)


# ---------------------------------------------------------------------------
# Accounts, fee, registry
# ---------------------------------------------------------------------------

def test_accounts_and_fee(ledger):
    accounts = ledger.accounts()
    assert len(accounts) == 40
    assert len(set(accounts)) == 40
    assert ledger.query_fee() == REGISTRATION_FEE == ETHER
    assert ledger.call("isOperational") is True


def test_registry_lookup():
    assert GATEWAY_REGISTRY["memory"] is MemoryLedger
    assert isinstance(get_gateway("memory", n_accounts=5), MemoryLedger)
    with pytest.raises(KeyError, match="Unknown gateway"):
        get_gateway("ipc")


def test_unknown_method(ledger):
    with pytest.raises(LedgerError):
        ledger.call("nope")
    with pytest.raises(LedgerError):
        ledger.send("nope", sender=ledger.accounts()[0])


def test_rejects_too_few_index_categories():
    with pytest.raises(ValueError):
        MemoryLedger(num_index_categories=2)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

def test_register_assigns_three_distinct_indexes(ledger):
    account = ledger.accounts()[25]
    receipt = ledger.send("registerOracle", sender=account, value=REGISTRATION_FEE)
    indexes = ledger.call("getMyIndexes", sender=account)
    assert len(indexes) == 3
    assert len(set(indexes)) == 3
    assert all(0 <= i < 10 for i in indexes)
    assert receipt.block_number == ledger.block_number() == 1


def test_register_charges_the_fee(ledger):
    account = ledger.accounts()[25]
    ledger.send("registerOracle", sender=account, value=REGISTRATION_FEE)
    assert ledger._balances[account] == 99 * ETHER


@pytest.mark.parametrize("value, reason", [
    (0, "Registration fee is required"),
    (REGISTRATION_FEE - 1, "Registration fee is required"),
    (1000 * ETHER, "enough funds"),
])
def test_register_reverts(ledger, value, reason):
    with pytest.raises(TransactionReverted, match=reason):
        ledger.send("registerOracle", sender=ledger.accounts()[25], value=value)
    assert ledger.block_number() == 0


def test_register_twice_reverts(ledger):
    account = ledger.accounts()[25]
    ledger.send("registerOracle", sender=account, value=REGISTRATION_FEE)
    with pytest.raises(TransactionReverted, match="already registered"):
        ledger.send("registerOracle", sender=account, value=REGISTRATION_FEE)


def test_indexes_of_unregistered_account_revert(ledger):
    with pytest.raises(TransactionReverted, match="Not registered as an oracle"):
        ledger.call("getMyIndexes", sender=ledger.accounts()[25])


def test_not_operational_rejects_transactions(ledger):
    ledger.operational = False
    with pytest.raises(TransactionReverted, match="not operational"):
        ledger.send("registerOracle", sender=ledger.accounts()[25], value=REGISTRATION_FEE)


# ---------------------------------------------------------------------------
# Requests and responses
# ---------------------------------------------------------------------------

def test_fetch_flight_status_emits_request(ledger):
    requester = ledger.accounts()[0]
    ledger.send("fetchFlightStatus", [AIRLINE, FLIGHT, TS], sender=requester)
    logs = ledger.get_logs("OracleRequest", 0, ledger.block_number())
    assert len(logs) == 1
    args = logs[0]["args"]
    assert (args["airline"], args["flight"], args["timestamp"]) == (AIRLINE, FLIGHT, TS)
    assert 0 <= args["index"] < 10
    assert logs[0]["blockNumber"] == 1


def test_three_agreeing_responses_resolve_the_request(ledger):
    oracles = ledger.accounts()[20:24]
    for account in oracles:
        _registered(ledger, account, (4, 5, 6))
    ledger.open_request(5, AIRLINE, FLIGHT, TS)

    for account in oracles[:3]:
        ledger.send("submitOracleResponse", [5, AIRLINE, FLIGHT, TS, 20], sender=account)

    info = ledger.get_logs("FlightStatusInfo", 0, ledger.block_number())
    assert [e["args"]["status"] for e in info] == [20]
    assert len(ledger.get_logs("OracleReport", 0, ledger.block_number())) == 3
    assert ledger.call("getFlightStatus", [AIRLINE, FLIGHT, TS]) == 20

    # the request is closed once resolved
    with pytest.raises(TransactionReverted, match="do not match oracle request"):
        ledger.send("submitOracleResponse", [5, AIRLINE, FLIGHT, TS, 20], sender=oracles[3])


def test_disagreeing_responses_do_not_resolve(ledger):
    oracles = ledger.accounts()[20:24]
    for account in oracles:
        _registered(ledger, account, (1, 2, 3))
    ledger.open_request(2, AIRLINE, FLIGHT, TS)

    for account, status in zip(oracles, (10, 20, 30, 10)):
        ledger.send("submitOracleResponse", [2, AIRLINE, FLIGHT, TS, status], sender=account)

    assert ledger.get_logs("FlightStatusInfo", 0, ledger.block_number()) == []
    assert ledger.call("getFlightStatus", [AIRLINE, FLIGHT, TS]) == 0


def test_response_with_foreign_index_reverts(ledger):
    account = ledger.accounts()[20]
    _registered(ledger, account, (1, 2, 3))
    ledger.open_request(7, AIRLINE, FLIGHT, TS)
    with pytest.raises(TransactionReverted, match="Index does not match oracle request"):
        ledger.send("submitOracleResponse", [7, AIRLINE, FLIGHT, TS, 10], sender=account)


def test_response_without_open_request_reverts(ledger):
    account = ledger.accounts()[20]
    _registered(ledger, account, (1, 2, 3))
    with pytest.raises(TransactionReverted, match="do not match oracle request"):
        ledger.send("submitOracleResponse", [1, AIRLINE, FLIGHT, TS, 10], sender=account)


# ---------------------------------------------------------------------------
# Logs
# ---------------------------------------------------------------------------

def test_get_logs_filters_by_name_and_block_range(ledger):
    b1 = ledger.emit("OracleRequest", {"index": 1})
    ledger.emit("Other", {"x": 1})
    b3 = ledger.emit("OracleRequest", {"index": 3})

    assert [e["args"]["index"] for e in ledger.get_logs("OracleRequest", 0, 10)] == [1, 3]
    assert [e["blockNumber"] for e in ledger.get_logs("OracleRequest", b3, b3)] == [b3]
    assert ledger.get_logs("OracleRequest", b1 + 1, b3 - 1) == []


def test_get_logs_returns_copies(ledger):
    ledger.emit("OracleRequest", {"index": 1})
    ledger.get_logs("OracleRequest", 0, 10)[0]["args"]["index"] = 99
    assert ledger.get_logs("OracleRequest", 0, 10)[0]["args"]["index"] == 1
