"""
Orchestrator - Drive N sequential submission attempts.

Each attempt:
1. Draw a fresh CircuitInput from the injected RNG
2. Ask the artifact provider for a proof
3. Submit it to the relay (optionally retrying retryable failures)
4. Poll the job to a terminal status
5. Append exactly one ledger row
6. Sleep attempt_delay before the next attempt

Attempts never overlap: at most one job is in flight at the relay.
Artifact and submission failures degrade the attempt to a "Failed" row;
the loop always runs to total_attempts.

Usage:
    orchestrator = Orchestrator.from_config(config)
    summary = orchestrator.run(config.total_attempts)
"""

import logging
import random
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from proofrelay.config import RelayConfig
from proofrelay.errors import ArtifactError, ConfigError, SubmissionError
from proofrelay.ledger import ResultLedger
from proofrelay.poller import JobPoller
from proofrelay.provider import ArtifactProvider, SnarkjsProvider
from proofrelay.relay import RelayClient
from proofrelay.schemas import (
    CircuitInput,
    STATUS_FAILED,
    SubmissionRecord,
    VerificationKey,
)
from proofrelay.utils import format_duration, retry_with_backoff, truncate

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """Outcome of a complete run."""
    records: list[SubmissionRecord] = field(default_factory=list)
    duration_s: float = 0.0

    @property
    def total(self) -> int:
        return len(self.records)

    def counts(self) -> dict[str, int]:
        """Number of records per terminal status."""
        return dict(Counter(r.status for r in self.records))

    @property
    def submitted(self) -> int:
        return sum(1 for r in self.records if r.submitted)


def load_verification_key(path: Path | str) -> VerificationKey:
    """Load the shared verification key, failing fast on a bad path."""
    try:
        return VerificationKey.load(Path(path).expanduser())
    except FileNotFoundError:
        raise ConfigError(f"Verification key not found: {path}")
    except ValueError as e:
        raise ConfigError(f"Invalid verification key {path}: {e}")


class Orchestrator:
    """Runs attempts one after another and records each outcome."""

    def __init__(
        self,
        provider: ArtifactProvider,
        client: RelayClient,
        poller: JobPoller,
        ledger: ResultLedger,
        verification_key: VerificationKey,
        rng: Optional[random.Random] = None,
        signals: tuple[str, ...] = ("a", "b"),
        input_min: int = 1,
        input_max: int = 100,
        attempt_delay: float = 30.0,
        submit_retries: int = 0,
        submit_backoff: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.client = client
        self.poller = poller
        self.ledger = ledger
        self.verification_key = verification_key
        self.rng = rng or random.Random()
        self.signals = tuple(signals)
        self.input_min = input_min
        self.input_max = input_max
        self.attempt_delay = attempt_delay
        self.submit_retries = submit_retries
        self.submit_backoff = submit_backoff
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        config: RelayConfig,
        provider: Optional[ArtifactProvider] = None,
        client: Optional[RelayClient] = None,
    ) -> "Orchestrator":
        """
        Wire up the default collaborators from configuration.

        Raises:
            ConfigError: Missing credential or verification key
        """
        verification_key = load_verification_key(config.vkey_path)
        if client is None:
            client = RelayClient(
                base_url=config.base_url,
                api_key=config.get_api_key(),
                timeout=config.request_timeout,
            )
        if provider is None:
            provider = SnarkjsProvider(
                wasm_path=config.wasm_path,
                zkey_path=config.zkey_path,
                work_dir=config.work_dir,
                snarkjs_bin=config.snarkjs_bin,
                timeout=config.prove_timeout,
                vkey_path=config.vkey_path,
                verify_locally=config.verify_locally,
            )
        poller = JobPoller(
            client,
            terminal_policy=config.terminal_policy,
            poll_interval=config.poll_interval,
            empty_status_interval=config.empty_status_interval,
            timeout=config.poll_timeout,
        )
        return cls(
            provider=provider,
            client=client,
            poller=poller,
            ledger=ResultLedger(config.ledger_path, config.audit_log_path),
            verification_key=verification_key,
            rng=random.Random(config.seed),
            signals=tuple(config.signals),
            input_min=config.input_min,
            input_max=config.input_max,
            attempt_delay=config.attempt_delay,
            submit_retries=config.submit_retries,
            submit_backoff=config.submit_backoff,
        )

    def next_input(self) -> CircuitInput:
        return CircuitInput.generate(self.rng, self.signals, self.input_min, self.input_max)

    def _submit(self, artifact) -> tuple[str, str]:
        return retry_with_backoff(
            lambda: self.client.submit(artifact, self.verification_key),
            max_attempts=self.submit_retries + 1,
            backoff_seconds=self.submit_backoff,
            should_retry=lambda e: isinstance(e, SubmissionError) and e.retryable,
            sleep=self._sleep,
            logger=logger,
        )

    def run_attempt(self, attempt_n: int) -> SubmissionRecord:
        """
        Run a single attempt end to end and record it.

        Never raises for artifact or submission failures.
        """
        circuit_input = self.next_input()
        logger.info(
            f"Proof #{attempt_n}: inputs {dict(circuit_input.signals)}",
            extra={"attempt": attempt_n, "event": "attempt_started"},
        )

        try:
            artifact = self.provider.generate(circuit_input, attempt_n)
        except ArtifactError as e:
            logger.error(f"Proof #{attempt_n}: proof generation failed: {e}", extra={"attempt": attempt_n})
            note = f"Proof generation failed: {e}"
            if e.stderr:
                note += f"\n{e.stderr}"
            return self.ledger.record(attempt_n, None, None, STATUS_FAILED, note=note)

        try:
            job_id, submit_raw = self._submit(artifact)
        except SubmissionError as e:
            logger.error(
                f"Proof #{attempt_n}: submission failed: {e} {truncate(e.raw, 200)}",
                extra={"attempt": attempt_n, "event": "submission_failed"},
            )
            return self.ledger.record(
                attempt_n, None, None, STATUS_FAILED,
                submission_response=e.raw,
                note=str(e),
            )

        logger.info(
            f"Proof #{attempt_n}: submitted, job {job_id}",
            extra={"attempt": attempt_n, "job_id": job_id, "event": "submitted"},
        )
        result = self.poller.poll(job_id)

        return self.ledger.record(
            attempt_n, job_id, result.tx_hash, result.status,
            submission_response=submit_raw,
            status_response=result.raw,
            note=f"Polled {result.polls} time(s)" + (", timed out" if result.timed_out else ""),
        )

    def run(self, total_attempts: int) -> RunSummary:
        """
        Run total_attempts attempts in order.

        Returns:
            RunSummary with one record per attempt
        """
        if total_attempts < 0:
            raise ValueError("total_attempts must be >= 0")

        started = self._clock()
        summary = RunSummary()
        logger.info(f"Starting run: {total_attempts} attempt(s)", extra={"event": "run_started"})

        for attempt_n in range(1, total_attempts + 1):
            record = self.run_attempt(attempt_n)
            summary.records.append(record)
            logger.info(
                f"Proof #{attempt_n}/{total_attempts}: {record.status} (tx {record.tx_hash})",
                extra={"attempt": attempt_n, "job_id": record.job_id, "event": "attempt_recorded"},
            )

            if attempt_n < total_attempts and self.attempt_delay > 0:
                logger.debug(f"Waiting {self.attempt_delay}s before next attempt")
                self._sleep(self.attempt_delay)

        summary.duration_s = self._clock() - started
        logger.info(
            f"Run finished in {format_duration(summary.duration_s)}: {summary.counts()}",
            extra={"event": "run_finished"},
        )
        return summary
