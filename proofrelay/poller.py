"""
JobPoller - Wait for a relay job to reach a terminal status.

Polling rules:
- Terminal status (per terminal policy): return immediately
- Non-terminal status: sleep poll_interval, query again
- Empty/unparseable status: sleep empty_status_interval, query again
- TransientError from the client: sleep poll_interval, query again

None of the non-terminal cases count as failures. The only way out
besides a terminal status is the timeout budget, which produces a
synthetic "Timeout" result so the orchestrator can move on.
"""

import logging
import time
from typing import Callable, Optional, Protocol

from proofrelay.errors import TransientError
from proofrelay.schemas import (
    JobResult,
    StatusResponse,
    STATUS_FAILED,
    STATUS_FINALIZED,
    STATUS_INCLUDED_IN_BLOCK,
    STATUS_TIMEOUT,
)

logger = logging.getLogger(__name__)


TERMINAL_STATUSES = {
    "strict": frozenset({STATUS_FINALIZED, STATUS_FAILED}),
    "permissive": frozenset({STATUS_FINALIZED, STATUS_FAILED, STATUS_INCLUDED_IN_BLOCK}),
}


def terminal_statuses(policy: str) -> frozenset[str]:
    """Return the terminal status set for a policy name."""
    try:
        return TERMINAL_STATUSES[policy]
    except KeyError:
        raise ValueError(
            f"Unknown terminal policy {policy!r}; expected one of {', '.join(TERMINAL_STATUSES)}"
        ) from None


class StatusSource(Protocol):
    def get_status(self, job_id: str) -> StatusResponse: ...


class JobPoller:
    """Blocks until a job is terminal or the timeout budget is spent."""

    def __init__(
        self,
        client: StatusSource,
        terminal_policy: str = "strict",
        poll_interval: float = 5.0,
        empty_status_interval: float = 1.0,
        timeout: Optional[float] = 600.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the poller.

        Args:
            client: Anything with get_status(job_id) -> StatusResponse
            terminal_policy: "strict" (Finalized/Failed) or "permissive" (+IncludedInBlock)
            poll_interval: Seconds between queries of a live job
            empty_status_interval: Seconds to wait after an empty/unparseable reply
            timeout: Budget in seconds per job; None or 0 waits forever
            clock: Monotonic clock (injected in tests)
            sleep: Sleep function (injected in tests)
        """
        self.client = client
        self.terminal_policy = terminal_policy
        self.terminal = terminal_statuses(terminal_policy)
        self.poll_interval = poll_interval
        self.empty_status_interval = empty_status_interval
        self.timeout = timeout or None
        self._clock = clock
        self._sleep = sleep

    def is_terminal(self, status: Optional[str]) -> bool:
        return status is not None and status in self.terminal

    def poll(self, job_id: str) -> JobResult:
        """
        Poll until terminal.

        Args:
            job_id: Relay job handle

        Returns:
            JobResult with the terminal (or synthetic Timeout) status
        """
        started = self._clock()
        polls = 0
        last_status: Optional[str] = None
        last_tx_hash: Optional[str] = None
        last_raw = ""

        while True:
            polls += 1
            try:
                response = self.client.get_status(job_id)
            except TransientError as e:
                logger.warning(f"Job {job_id}: status query failed ({e}); retrying in {self.poll_interval}s")
                wait = self.poll_interval
            else:
                last_raw = response.raw
                if response.tx_hash:
                    last_tx_hash = response.tx_hash

                if response.status is None:
                    logger.debug(f"Job {job_id}: empty status, retrying in {self.empty_status_interval}s")
                    wait = self.empty_status_interval
                elif self.is_terminal(response.status):
                    logger.info(
                        f"Job {job_id}: {response.status}"
                        + (f" (tx {response.tx_hash})" if response.tx_hash else "")
                    )
                    return JobResult(
                        job_id=job_id,
                        status=response.status,
                        tx_hash=response.tx_hash,
                        polls=polls,
                        raw=response.raw,
                    )
                else:
                    if response.status != last_status:
                        logger.info(f"Job {job_id}: {response.status}")
                    last_status = response.status
                    wait = self.poll_interval

            if self.timeout is not None:
                elapsed = self._clock() - started
                if elapsed + wait > self.timeout:
                    logger.warning(
                        f"Job {job_id}: no terminal status after {elapsed:.0f}s "
                        f"(last: {last_status or 'none'}); giving up"
                    )
                    return JobResult(
                        job_id=job_id,
                        status=STATUS_TIMEOUT,
                        tx_hash=last_tx_hash,
                        polls=polls,
                        raw=last_raw,
                    )

            self._sleep(wait)
