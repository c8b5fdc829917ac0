"""
SubmissionRecord schema - one ledger row per attempt.

Rows are append-only; a record is never mutated after it is written.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


# Sentinels written when a value is not available
JOB_ID_FAILED = "FAILED"
TX_HASH_ABSENT = "N/A"

LEDGER_HEADER = ("Timestamp", "Proof_Number", "JobID", "TxHash", "Status")


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SubmissionRecord:
    """
    The outcome of a single attempt.

    Attributes:
        attempt_n: Attempt number (1-indexed)
        job_id: Relay job handle, or JOB_ID_FAILED if none was obtained
        tx_hash: Transaction hash, or TX_HASH_ABSENT
        status: Terminal status ("Finalized", "Failed", "IncludedInBlock", "Timeout")
        timestamp: When the record was written
    """
    attempt_n: int
    job_id: str
    tx_hash: str
    status: str
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if self.attempt_n < 1:
            raise ValueError("attempt_n must be >= 1")

    @classmethod
    def create(
        cls,
        attempt_n: int,
        job_id: Optional[str],
        tx_hash: Optional[str],
        status: str,
    ) -> "SubmissionRecord":
        """Build a record, substituting sentinels for missing values."""
        return cls(
            attempt_n=attempt_n,
            job_id=job_id or JOB_ID_FAILED,
            tx_hash=tx_hash or TX_HASH_ABSENT,
            status=status,
        )

    @property
    def submitted(self) -> bool:
        return self.job_id != JOB_ID_FAILED

    def to_row(self) -> list[str]:
        """Serialize to a CSV row matching LEDGER_HEADER."""
        return [
            self.timestamp.isoformat(),
            str(self.attempt_n),
            self.job_id,
            self.tx_hash,
            self.status,
        ]

    @classmethod
    def from_row(cls, row: dict[str, str]) -> "SubmissionRecord":
        """Deserialize from a csv.DictReader row."""
        return cls(
            attempt_n=int(row["Proof_Number"]),
            job_id=row["JobID"],
            tx_hash=row["TxHash"],
            # Older ledgers have no Status column
            status=row.get("Status") or "",
            timestamp=datetime.fromisoformat(row["Timestamp"]),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "attempt_n": self.attempt_n,
            "job_id": self.job_id,
            "tx_hash": self.tx_hash,
            "status": self.status,
        }
