"""Failure types of the oracle core.  None of them is fatal to the process."""


class CoordinatorError(Exception):
    """Base class for oracle coordinator failures."""


class RegistrationFailure(CoordinatorError):
    """One oracle could not be registered; it is skipped for this run."""

    def __init__(self, account: str, reason: str):
        self.account = account
        self.reason = reason
        super().__init__(f"oracle {account}: {reason}")


class EventDecodeFailure(CoordinatorError, ValueError):
    """A status-request event was missing fields or carried bad values."""


class SubmissionFailure(CoordinatorError):
    """A single oracle response was rejected or never reached the ledger."""

    def __init__(self, account: str, reason: str):
        self.account = account
        self.reason = reason
        super().__init__(f"oracle {account}: {reason}")
