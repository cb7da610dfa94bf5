"""Exceptions raised by ledger gateways."""


class LedgerError(Exception):
    """Base class for anything a ledger gateway refuses or fails to do."""


class TransportError(LedgerError):
    """The node could not be reached, or the connection dropped mid-call."""


class TransactionReverted(LedgerError):
    """The contract rejected a call or transaction.

    ``reason`` carries the revert reason text when the node reports one.
    """

    def __init__(self, method: str, reason: str = ""):
        self.method = method
        self.reason = reason or "reverted without reason"
        super().__init__(f"{method}: {self.reason}")
