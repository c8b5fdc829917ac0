"""
ResultLedger - Durable record of every attempt.

Two files:

    submissions.csv        Timestamp,Proof_Number,JobID,TxHash,Status
    relay_responses.log    raw submission / status responses, one block per attempt

The CSV header is written only when the file is missing or empty, so a
restarted run keeps appending to the same ledger. Every write opens the
file in append mode and closes it again, leaving complete rows behind if
the process is interrupted between attempts.

The orchestrator only ever writes here. read_records() exists for the CLI
and other external readers.
"""

import csv
import logging
from pathlib import Path
from typing import Iterator, Optional

from proofrelay.schemas import LEDGER_HEADER, SubmissionRecord

logger = logging.getLogger(__name__)


class ResultLedger:
    """Append-only CSV ledger plus a plain-text audit log."""

    def __init__(self, ledger_path: Path | str, audit_log_path: Path | str):
        self.ledger_path = Path(ledger_path).expanduser()
        self.audit_log_path = Path(audit_log_path).expanduser()

    def _ensure_header(self) -> None:
        """Create the ledger with its header unless it already has content."""
        if self.ledger_path.exists() and self.ledger_path.stat().st_size > 0:
            return
        self.ledger_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.ledger_path, "a", newline="") as f:
            csv.writer(f).writerow(LEDGER_HEADER)

    def record(
        self,
        attempt_n: int,
        job_id: Optional[str],
        tx_hash: Optional[str],
        status: str,
        submission_response: Optional[str] = None,
        status_response: Optional[str] = None,
        note: Optional[str] = None,
    ) -> SubmissionRecord:
        """
        Append one attempt to the ledger and the audit log.

        Args:
            attempt_n: Attempt number (1-indexed)
            job_id: Relay job handle, None if submission failed
            tx_hash: Transaction hash, None if absent
            status: Terminal status for the attempt
            submission_response: Raw submit response (or transport error text)
            status_response: Raw body of the final status response
            note: Free-form reason, e.g. why proof generation failed

        Returns:
            The SubmissionRecord that was written
        """
        record = SubmissionRecord.create(attempt_n, job_id, tx_hash, status)

        self._ensure_header()
        with open(self.ledger_path, "a", newline="") as f:
            csv.writer(f).writerow(record.to_row())
            f.flush()

        self.audit(record, submission_response, status_response, note)
        logger.debug(f"Recorded attempt {attempt_n}: {record.status}", extra={"attempt": attempt_n})
        return record

    def audit(
        self,
        record: SubmissionRecord,
        submission_response: Optional[str] = None,
        status_response: Optional[str] = None,
        note: Optional[str] = None,
    ) -> None:
        """Append the raw wire payloads for one attempt to the audit log."""
        self.audit_log_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [
            f"=== Proof #{record.attempt_n} @ {record.timestamp.isoformat()} ===",
            f"JobID: {record.job_id}",
            f"Status: {record.status}",
        ]
        if note:
            lines.append(f"Note: {note}")
        lines.append("Submission response:")
        lines.append(submission_response if submission_response else "(none)")
        lines.append("Final status response:")
        lines.append(status_response if status_response else "(none)")
        lines.append("")

        with open(self.audit_log_path, "a") as f:
            f.write("\n".join(lines) + "\n")
            f.flush()


def read_records(ledger_path: Path | str) -> Iterator[SubmissionRecord]:
    """
    Read records back from a ledger file.

    Yields nothing if the file does not exist.
    """
    path = Path(ledger_path).expanduser()
    if not path.exists():
        return
    with open(path, newline="") as f:
        for row in csv.DictReader(f):
            yield SubmissionRecord.from_row(row)
