"""Status responder: one oracle answering one status request."""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional

from ledger.errors import LedgerError
from ledger.gateway import DEFAULT_GAS_LIMIT, LedgerGateway, Receipt
from oracles.errors import SubmissionFailure
from oracles.events import StatusRequestEvent
from oracles.pool import OracleIdentity
from oracles.status_codes import STATUS_NAMES, StatusPicker

log = logging.getLogger("oracles.responder")

SUBMIT_METHOD = "submitOracleResponse"


@dataclass
class ResponseAttempt:
    """Outcome of one submission.  Logged, then discarded."""

    oracle: OracleIdentity
    request: StatusRequestEvent
    status_code: Optional[int] = None
    succeeded: bool = False
    reason: str = ""


class StatusResponder:
    """Synthesizes a status code and submits it as the oracle.

    Submissions block on the ledger, so they run on the responder's own
    thread pool.  That keeps slow transactions from starving the event
    subscription, which polls on the default executor.

    Parameters
    ----------
    gateway : LedgerGateway
        Where responses are sent.
    picker : callable() -> int, optional
        Status code source.  Defaults to an unseeded ``StatusPicker``.
    gas_limit : int
        Gas attached to every response transaction.
    max_workers : int
        Concurrent submissions in flight.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        picker: Optional[Callable[[], int]] = None,
        gas_limit: int = DEFAULT_GAS_LIMIT,
        max_workers: int = 32,
    ):
        self.gateway = gateway
        self.picker = picker if picker is not None else StatusPicker()
        self.gas_limit = gas_limit
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="oracle-response"
        )
        self.submitted = 0
        self.failed = 0

    def submit(self, attempt: ResponseAttempt) -> Receipt:
        """Send the response transaction for *attempt*.  Blocking.

        Raises ``SubmissionFailure`` when the ledger rejects it or cannot be
        reached.
        """
        try:
            return self.gateway.send(
                SUBMIT_METHOD,
                attempt.request.submission_args(attempt.status_code),
                sender=attempt.oracle.account,
                gas=self.gas_limit,
            )
        except LedgerError as exc:
            raise SubmissionFailure(attempt.oracle.account, str(exc)) from exc

    async def respond(self, oracle: OracleIdentity, request: StatusRequestEvent) -> ResponseAttempt:
        """Pick a status and submit it.  Never raises on ledger failure."""
        attempt = ResponseAttempt(oracle=oracle, request=request)
        loop = asyncio.get_running_loop()
        try:
            attempt.status_code = self.picker()
            await loop.run_in_executor(self._executor, self.submit, attempt)
        except SubmissionFailure as exc:
            attempt.reason = exc.reason
        except Exception as exc:  # pylint: disable=broad-except
            attempt.reason = f"{type(exc).__name__}: {exc}"
            log.exception("unexpected error submitting response oracle=%s", oracle.account)
        else:
            attempt.succeeded = True

        if attempt.succeeded:
            self.submitted += 1
            log.info(
                "oracle response submitted oracle=%s index=%d flight=%s status=%d(%s)",
                oracle.account, request.index, request.flight,
                attempt.status_code, STATUS_NAMES.get(attempt.status_code, "?"),
            )
        else:
            self.failed += 1
            log.info(
                "oracle response rejected oracle=%s index=%d flight=%s status=%s reason=%s",
                oracle.account, request.index, request.flight,
                attempt.status_code, attempt.reason,
            )
        return attempt

    def close(self) -> None:
        """Abandon queued submissions; running ones finish in the background."""
        self._executor.shutdown(wait=False, cancel_futures=True)
