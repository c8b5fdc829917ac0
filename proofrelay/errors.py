"""
Error classes for proofrelay.

These error types enable retry classification at IO boundaries:
- TransientError: Safe to retry (network issues, 5xx, rate limits)
- PermanentError: Do not retry (bad config, toolchain failure, 4xx)

The relay client and artifact provider raise these errors.
The orchestrator catches them at the attempt boundary and degrades the
attempt to a failed ledger row; nothing below ConfigError stops a run.
"""

from typing import Optional


class ProofRelayError(Exception):
    """Base exception for proofrelay."""
    pass


class TransientError(ProofRelayError):
    """
    Transient error - safe to retry.

    Examples:
    - Connection reset / DNS failure
    - Request timeout
    - Relay returned 429 or 5xx

    The poller retries status queries that raise TransientError
    after the polling interval.
    """
    pass


class PermanentError(ProofRelayError):
    """
    Permanent error - do not retry.

    Examples:
    - Missing credential or verification key
    - Proving toolchain exited non-zero
    - Relay rejected the request (4xx)
    """
    pass


class ConfigError(PermanentError):
    """Configuration validation error."""
    pass


class ArtifactError(PermanentError):
    """
    The artifact provider could not produce a proof.

    Attributes:
        command: The toolchain command that failed (if any)
        stderr: Captured stderr of the failing command
    """

    def __init__(self, message: str, command: Optional[str] = None, stderr: str = ""):
        super().__init__(message)
        self.command = command
        self.stderr = stderr


class SubmissionError(ProofRelayError):
    """
    The relay did not hand back a job id for a submission.

    Attributes:
        raw: Raw response body, or the transport error text, kept for the audit log
        status_code: HTTP status code if a response was received
        retryable: True for transport failures, 429 and 5xx responses
    """

    def __init__(
        self,
        message: str,
        raw: str = "",
        status_code: Optional[int] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.raw = raw
        self.status_code = status_code
        self.retryable = retryable
