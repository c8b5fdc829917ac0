"""
proofrelay.schemas - Data structures for the submission pipeline.

CircuitInput -> ProofArtifact -> SubmissionRequest -> JobResult -> SubmissionRecord

Lifecycle:
1. CircuitInput: Fresh random signals, one per attempt
2. ProofArtifact: Produced by the artifact provider from the input
3. SubmissionRequest: Relay body built from the artifact + shared VerificationKey
4. StatusResponse / JobResult: Job lifecycle as observed by the poller
5. SubmissionRecord: The ledger row written for the attempt
"""

from .artifact import (
    CircuitInput,
    ProofArtifact,
    VerificationKey,
)
from .submission import (
    SubmissionRequest,
    StatusResponse,
    JobResult,
    STATUS_FINALIZED,
    STATUS_FAILED,
    STATUS_INCLUDED_IN_BLOCK,
    STATUS_TIMEOUT,
)
from .record import (
    SubmissionRecord,
    JOB_ID_FAILED,
    TX_HASH_ABSENT,
    LEDGER_HEADER,
)

__all__ = [
    # Artifacts
    "CircuitInput",
    "ProofArtifact",
    "VerificationKey",
    # Relay wire shapes
    "SubmissionRequest",
    "StatusResponse",
    "JobResult",
    "STATUS_FINALIZED",
    "STATUS_FAILED",
    "STATUS_INCLUDED_IN_BLOCK",
    "STATUS_TIMEOUT",
    # Ledger
    "SubmissionRecord",
    "JOB_ID_FAILED",
    "TX_HASH_ABSENT",
    "LEDGER_HEADER",
]
