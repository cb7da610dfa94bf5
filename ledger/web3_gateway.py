"""
web3.py gateway for a deployed FlightSuretyApp contract.

Talks to a development node (Ganache / Hardhat) over HTTP.  Oracle accounts
are the node's unlocked accounts, so transactions are sent with
``transact({"from": account})`` and the node signs them.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Sequence

import requests
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from ledger.errors import LedgerError, TransactionReverted, TransportError
from ledger.gateway import DEFAULT_GAS_LIMIT, LedgerGateway, Receipt

log = logging.getLogger("ledger.web3")

# Errors raised by the HTTP provider when the node is unreachable.
_TRANSPORT_ERRORS = (
    requests.exceptions.RequestException,
    ConnectionError,
    TimeoutError,
    TimeExhausted,
)


def load_abi(artifact_path: str | Path) -> list:
    """Read the ``abi`` array from a Truffle/Hardhat build artifact."""
    with open(artifact_path) as f:
        artifact = json.load(f)
    if "abi" not in artifact:
        raise ValueError(f"Artifact '{artifact_path}' has no 'abi' key")
    return artifact["abi"]


def _revert_reason(exc: ContractLogicError) -> str:
    message = getattr(exc, "message", None) or str(exc)
    prefix = "execution reverted: "
    if prefix in message:
        return message.split(prefix, 1)[1]
    return message


class Web3Gateway(LedgerGateway):
    """Ledger gateway backed by web3.py.

    Parameters
    ----------
    rpc_url : str
        Node HTTP endpoint, e.g. ``"http://localhost:7545"``.
    contract_address : str
        Deployed FlightSuretyApp address.
    abi : list, optional
        Contract ABI.  Either this or *abi_path* is required.
    abi_path : str | Path, optional
        Path to the build artifact holding the ABI.
    gas_limit : int
        Gas attached to transactions that do not specify their own.
    receipt_timeout : float
        Seconds to wait for a transaction to be mined.
    """

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        abi: Optional[list] = None,
        abi_path: Optional[str | Path] = None,
        gas_limit: int = DEFAULT_GAS_LIMIT,
        receipt_timeout: float = 120.0,
    ):
        if abi is None:
            if abi_path is None:
                raise ValueError("Web3Gateway needs either 'abi' or 'abi_path'")
            abi = load_abi(abi_path)
        if rpc_url.startswith("ws"):
            rpc_url = "http" + rpc_url[2:]
        self.rpc_url = rpc_url
        self.gas_limit = gas_limit
        self.receipt_timeout = receipt_timeout
        self._w3 = Web3(Web3.HTTPProvider(rpc_url))
        self._contract = self._w3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=abi,
        )

    # ------------------------------------------------------------------

    def accounts(self) -> list[str]:
        try:
            return list(self._w3.eth.accounts)
        except _TRANSPORT_ERRORS as exc:
            raise TransportError(f"accounts: {exc}") from exc
        except Web3Exception as exc:
            raise LedgerError(f"accounts: {exc}") from exc

    def block_number(self) -> int:
        try:
            return int(self._w3.eth.block_number)
        except _TRANSPORT_ERRORS as exc:
            raise TransportError(f"block_number: {exc}") from exc
        except Web3Exception as exc:
            raise LedgerError(f"block_number: {exc}") from exc

    def get_logs(self, event_name: str, from_block: int, to_block: int) -> list[dict]:
        try:
            event = getattr(self._contract.events, event_name)
        except (AttributeError, Web3Exception) as exc:
            raise LedgerError(f"Contract has no event '{event_name}'") from exc
        try:
            entries = event().get_logs(from_block=from_block, to_block=to_block)
        except _TRANSPORT_ERRORS as exc:
            raise TransportError(f"get_logs({event_name}): {exc}") from exc
        except Web3Exception as exc:
            raise LedgerError(f"get_logs({event_name}): {exc}") from exc
        return [
            {
                "event": entry["event"],
                "blockNumber": entry["blockNumber"],
                "transactionHash": Web3.to_hex(entry["transactionHash"]),
                "args": dict(entry["args"]),
            }
            for entry in entries
        ]

    def call(self, method: str, args: Sequence[Any] = (), sender: Optional[str] = None) -> Any:
        fn = self._function(method, args)
        tx = {"from": sender} if sender else {}
        try:
            return fn.call(tx)
        except ContractLogicError as exc:
            raise TransactionReverted(method, _revert_reason(exc)) from exc
        except _TRANSPORT_ERRORS as exc:
            raise TransportError(f"{method}: {exc}") from exc
        except Web3Exception as exc:
            raise LedgerError(f"{method}: {exc}") from exc

    def send(
        self,
        method: str,
        args: Sequence[Any] = (),
        sender: Optional[str] = None,
        value: int = 0,
        gas: Optional[int] = None,
    ) -> Receipt:
        fn = self._function(method, args)
        tx = {"value": int(value), "gas": gas or self.gas_limit}
        if sender:
            tx["from"] = sender
        try:
            tx_hash = fn.transact(tx)
            receipt = self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        except ContractLogicError as exc:
            raise TransactionReverted(method, _revert_reason(exc)) from exc
        except _TRANSPORT_ERRORS as exc:
            raise TransportError(f"{method}: {exc}") from exc
        except Web3Exception as exc:
            raise LedgerError(f"{method}: {exc}") from exc

        if receipt["status"] == 0:
            raise TransactionReverted(method)

        log.debug("mined method=%s sender=%s block=%s", method, sender, receipt["blockNumber"])
        return Receipt(
            tx_hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=int(receipt["blockNumber"]),
            gas_used=int(receipt["gasUsed"]),
        )

    # ------------------------------------------------------------------

    def _function(self, method: str, args: Sequence[Any]):
        try:
            fn = getattr(self._contract.functions, method)
        except (AttributeError, Web3Exception) as exc:
            raise LedgerError(f"Contract has no function '{method}'") from exc
        return fn(*args)
