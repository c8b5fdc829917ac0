"""
Submission schemas - relay wire shapes.

SubmissionRequest is the body of POST /submit-proof/{key}.
StatusResponse is one parsed GET /job-status/{key}/{jobId} reply.
JobResult is what the poller hands back once a job is terminal.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional

from .artifact import ProofArtifact, VerificationKey


PROOF_TYPE = "groth16"
PROOF_LIBRARY = "snarkjs"
PROOF_CURVE = "bn128"

# Relay job statuses
STATUS_FINALIZED = "Finalized"
STATUS_FAILED = "Failed"
STATUS_INCLUDED_IN_BLOCK = "IncludedInBlock"
# Local only - never returned by the relay
STATUS_TIMEOUT = "Timeout"


@dataclass(frozen=True)
class SubmissionRequest:
    """
    One proof submission.

    vk_registered is always False: the verification key travels inline
    with every request instead of being registered with the relay.
    """
    proof: dict[str, Any]
    public_signals: list[Any]
    vk: dict[str, Any]
    proof_type: str = PROOF_TYPE
    library: str = PROOF_LIBRARY
    curve: str = PROOF_CURVE
    vk_registered: bool = False

    @classmethod
    def build(cls, artifact: ProofArtifact, vk: VerificationKey) -> "SubmissionRequest":
        return cls(
            proof=artifact.proof,
            public_signals=artifact.public_signals,
            vk=vk.data,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the relay's JSON body (key order matches the API docs)."""
        return {
            "proofType": self.proof_type,
            "vkRegistered": self.vk_registered,
            "proofOptions": {
                "library": self.library,
                "curve": self.curve,
            },
            "proofData": {
                "proof": self.proof,
                "publicSignals": self.public_signals,
                "vk": self.vk,
            },
        }


@dataclass(frozen=True)
class StatusResponse:
    """
    A single job-status reply.

    Attributes:
        status: Job status, or None when the body was empty or unparseable
        tx_hash: Transaction hash if the relay included one
        raw: Raw response body
    """
    status: Optional[str]
    tx_hash: Optional[str] = None
    raw: str = ""

    @classmethod
    def parse(cls, raw: str) -> "StatusResponse":
        """
        Parse a response body against the known schema.

        Anything that is not a JSON object with a non-empty string
        `status` yields status=None.
        """
        try:
            body = json.loads(raw) if raw else None
        except ValueError:
            body = None
        if not isinstance(body, dict):
            return cls(status=None, raw=raw)

        status = body.get("status")
        if not isinstance(status, str) or not status.strip():
            status = None
        tx_hash = body.get("txHash")
        if not isinstance(tx_hash, str) or not tx_hash:
            tx_hash = None
        return cls(status=status.strip() if status else None, tx_hash=tx_hash, raw=raw)


@dataclass(frozen=True)
class JobResult:
    """
    Terminal outcome of polling one job.

    Attributes:
        job_id: Relay job handle
        status: Terminal status (relay status or synthetic Timeout)
        tx_hash: Transaction hash if one was reported
        polls: Number of status queries issued
        raw: Raw body of the last status response seen
    """
    job_id: str
    status: str
    tx_hash: Optional[str] = None
    polls: int = 0
    raw: str = ""

    @property
    def timed_out(self) -> bool:
        return self.status == STATUS_TIMEOUT
