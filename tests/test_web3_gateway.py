"""Offline tests for the web3.py gateway (no node required)."""

import asyncio
import json
from types import SimpleNamespace

import pytest
from web3.exceptions import ContractLogicError, Web3RPCError

from ledger.errors import LedgerError
from ledger.web3_gateway import Web3Gateway, _revert_reason, load_abi

ADDRESS = "0x" + "ab" * 20

ABI = [
    {
        "type": "function",
        "name": "REGISTRATION_FEE",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
    },
    {
        "type": "event",
        "name": "OracleRequest",
        "anonymous": False,
        "inputs": [
            {"name": "index", "type": "uint8", "indexed": False},
            {"name": "airline", "type": "address", "indexed": False},
            {"name": "flight", "type": "string", "indexed": False},
            {"name": "timestamp", "type": "uint256", "indexed": False},
        ],
    },
]


def test_load_abi(tmp_path):
    path = tmp_path / "FlightSuretyApp.json"
    path.write_text(json.dumps({"contractName": "FlightSuretyApp", "abi": ABI}))
    assert load_abi(path) == ABI


def test_load_abi_without_abi_key(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text(json.dumps({"bytecode": "0x"}))
    with pytest.raises(ValueError, match="no 'abi' key"):
        load_abi(path)


def test_revert_reason_strips_node_prefix():
    exc = ContractLogicError("execution reverted: Registration fee is required")
    assert _revert_reason(exc) == "Registration fee is required"


def test_gateway_needs_an_abi():
    with pytest.raises(ValueError, match="abi"):
        Web3Gateway("http://localhost:7545", ADDRESS)


def test_websocket_url_is_polled_over_http():
    gateway = Web3Gateway("ws://localhost:7545", ADDRESS, abi=ABI)
    assert gateway.rpc_url == "http://localhost:7545"


def test_unknown_function_and_event():
    gateway = Web3Gateway("http://localhost:7545", ADDRESS, abi=ABI)
    with pytest.raises(LedgerError, match="no function 'registerOracle'"):
        gateway.send("registerOracle", sender=ADDRESS, value=1)
    with pytest.raises(LedgerError, match="no event 'FlightStatusInfo'"):
        gateway.get_logs("FlightStatusInfo", 0, 10)


class _RejectingEth:
    """Node whose JSON-RPC answers every head query with an error."""

    @property
    def block_number(self):
        raise Web3RPCError("header not found")

    @property
    def accounts(self):
        raise Web3RPCError("rate limited")


def _rejecting_gateway():
    gateway = Web3Gateway("http://localhost:7545", ADDRESS, abi=ABI)
    gateway._w3 = SimpleNamespace(eth=_RejectingEth())
    return gateway


def test_node_rpc_errors_become_ledger_errors():
    gateway = _rejecting_gateway()
    with pytest.raises(LedgerError, match="header not found"):
        gateway.block_number()
    with pytest.raises(LedgerError, match="rate limited"):
        gateway.accounts()


def test_subscription_survives_node_rpc_errors():
    gateway = _rejecting_gateway()
    errors = []

    async def scenario():
        sub = gateway.subscribe(
            "OracleRequest", poll_interval=0.01, max_backoff=0.02, on_error=errors.append,
        )
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(sub.__anext__(), 0.3)
        sub.close()
        return sub

    sub = asyncio.run(scenario())
    assert len(errors) >= 2
    assert all(isinstance(e, LedgerError) for e in errors)
    assert sub.error_count == len(errors)
