"""Relay boundary - HTTP client for proof submission and job status."""

from .client import RelayClient, RETRYABLE_STATUS_CODES

__all__ = ["RelayClient", "RETRYABLE_STATUS_CODES"]
