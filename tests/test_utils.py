"""Tests for proofrelay.utils."""

import json
import logging

import pytest

from proofrelay.utils import (
    StructuredFormatter,
    format_duration,
    mask_secret,
    retry_with_backoff,
    setup_logging,
    truncate,
)


class TestRetryWithBackoff:

    def test_returns_first_success(self):
        sleeps = []
        assert retry_with_backoff(lambda: 7, sleep=sleeps.append) == 7
        assert sleeps == []

    def test_retries_with_exponential_backoff(self):
        calls = []
        sleeps = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("reset")
            return "ok"

        result = retry_with_backoff(flaky, max_attempts=5, backoff_seconds=2, sleep=sleeps.append)

        assert result == "ok"
        assert sleeps == [2, 4]

    def test_reraises_after_max_attempts(self):
        sleeps = []

        def always_fails():
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            retry_with_backoff(always_fails, max_attempts=3, backoff_seconds=1, sleep=sleeps.append)
        assert sleeps == [1, 2]

    def test_should_retry_predicate_stops_immediately(self):
        calls = []

        def bad_input():
            calls.append(1)
            raise ValueError("bad")

        with pytest.raises(ValueError):
            retry_with_backoff(
                bad_input, max_attempts=5, should_retry=lambda e: not isinstance(e, ValueError),
                sleep=lambda s: None,
            )
        assert len(calls) == 1

    def test_single_attempt_never_sleeps(self):
        sleeps = []
        with pytest.raises(RuntimeError):
            retry_with_backoff(lambda: (_ for _ in ()).throw(RuntimeError("x")), max_attempts=1, sleep=sleeps.append)
        assert sleeps == []


class TestStructuredFormatter:

    def test_includes_extras(self):
        record = logging.LogRecord("proofrelay.orchestrator", logging.INFO, __file__, 1, "Proof #%d", (3,), None)
        record.attempt = 3
        record.job_id = "abc123"
        record.event = "submitted"

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "Proof #3"
        assert data["level"] == "INFO"
        assert data["attempt"] == 3
        assert data["job_id"] == "abc123"
        assert data["event"] == "submitted"

    def test_omits_missing_extras(self):
        record = logging.LogRecord("proofrelay", logging.WARNING, __file__, 1, "hi", (), None)
        data = json.loads(StructuredFormatter().format(record))
        assert "attempt" not in data
        assert "job_id" not in data


def test_setup_logging_writes_json_file(tmp_path):
    log_file = tmp_path / "logs" / "run.log"
    logger = setup_logging("DEBUG", "plain", log_file=log_file, console_output=False)

    logging.getLogger("proofrelay.poller").info("Job abc: Pending", extra={"job_id": "abc"})
    for handler in logger.handlers:
        handler.flush()

    entry = json.loads(log_file.read_text().splitlines()[-1])
    assert entry["message"] == "Job abc: Pending"
    assert entry["job_id"] == "abc"
    assert entry["logger"] == "proofrelay.poller"


def test_setup_logging_replaces_handlers():
    setup_logging("INFO", "plain")
    logger = setup_logging("WARNING", "pretty")
    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING


def test_mask_secret():
    assert mask_secret("https://r/submit-proof/abc/x", "abc") == "https://r/submit-proof/***/x"
    assert mask_secret("nothing here", "") == "nothing here"


def test_truncate():
    assert truncate("short") == "short"
    assert truncate("x" * 20, 5) == "xxxxx..."


@pytest.mark.parametrize("seconds,expected", [
    (5, "5.0s"),
    (150, "2m 30s"),
    (3 * 3600 + 120, "3h 2m"),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected
