"""
Relay client - IO boundary for proof submission and job status.

This module is the single place where proofrelay talks HTTP to the
verification relay.

    POST {base}/submit-proof/{api_key}            -> {"jobId": ...}
    GET  {base}/job-status/{api_key}/{job_id}     -> {"status": ..., "txHash": ...}

Error classification:
- submit(): every failure raises SubmissionError carrying the raw body
  (or transport error text). Transport errors, 429 and 5xx are retryable.
- get_status(): transport errors and non-2xx raise TransientError.
  A 2xx body without a usable status is returned as status=None; the
  poller decides what to do with it.

No retries happen here; retry policy belongs to the caller.
"""

import json
import logging
from typing import Optional

import requests

from proofrelay.errors import SubmissionError, TransientError
from proofrelay.schemas import (
    ProofArtifact,
    StatusResponse,
    SubmissionRequest,
    VerificationKey,
)
from proofrelay.utils import mask_secret, truncate

logger = logging.getLogger(__name__)


RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


class RelayClient:
    """
    HTTP client for the verification relay.

    The credential and base URL are fixed at construction; nothing is read
    from the environment here.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Relay API root, e.g. https://relayer-api.horizenlabs.io/api/v1
            api_key: Relay credential (path segment of every request)
            timeout: Per-request timeout in seconds
            session: Optional requests.Session (injected in tests)
        """
        if not api_key:
            raise ValueError("api_key is required")
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    def submit_url(self) -> str:
        return f"{self.base_url}/submit-proof/{self._api_key}"

    def status_url(self, job_id: str) -> str:
        return f"{self.base_url}/job-status/{self._api_key}/{job_id}"

    def _masked(self, url: str) -> str:
        return mask_secret(url, self._api_key)

    def submit(self, artifact: ProofArtifact, vk: VerificationKey) -> tuple[str, str]:
        """
        Submit a proof with its verification key inline.

        Args:
            artifact: Proof and public signals for this attempt
            vk: Shared verification key

        Returns:
            (job_id, raw response body)

        Raises:
            SubmissionError: On any failure to obtain a job id
        """
        request = SubmissionRequest.build(artifact, vk)
        try:
            body = json.dumps(request.to_dict())
        except (TypeError, ValueError) as e:
            raise SubmissionError(f"Could not serialize submission: {e}", raw=str(e)) from e

        url = self.submit_url()
        logger.debug(f"POST {self._masked(url)}")
        try:
            response = self.session.post(url, data=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise SubmissionError(
                f"Submission transport error: {e}",
                raw=mask_secret(str(e), self._api_key),
                retryable=True,
            ) from e

        raw = response.text
        if not response.ok:
            raise SubmissionError(
                f"Relay rejected submission: HTTP {response.status_code}",
                raw=raw,
                status_code=response.status_code,
                retryable=response.status_code in RETRYABLE_STATUS_CODES,
            )

        try:
            payload = response.json()
        except ValueError:
            raise SubmissionError(
                "Relay returned a non-JSON submission response",
                raw=raw,
                status_code=response.status_code,
            )

        job_id = payload.get("jobId") if isinstance(payload, dict) else None
        if not isinstance(job_id, str) or not job_id.strip():
            raise SubmissionError(
                "Relay response has no jobId",
                raw=raw,
                status_code=response.status_code,
            )

        return job_id.strip(), raw

    def get_status(self, job_id: str) -> StatusResponse:
        """
        Query the status of a submitted job once.

        Raises:
            TransientError: Transport failure or non-2xx response
        """
        url = self.status_url(job_id)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransientError(
                f"Status query failed for job {job_id}: {mask_secret(str(e), self._api_key)}"
            ) from e

        if not response.ok:
            raise TransientError(
                f"Status query for job {job_id} returned HTTP {response.status_code}: "
                f"{truncate(response.text, 200)}"
            )

        return StatusResponse.parse(response.text)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "RelayClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
