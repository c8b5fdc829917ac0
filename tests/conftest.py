import json
import logging
import random
from typing import Optional

import pytest
import requests

from proofrelay.config import RelayConfig
from proofrelay.errors import ArtifactError, TransientError
from proofrelay.provider import ArtifactProvider
from proofrelay.schemas import (
    CircuitInput,
    ProofArtifact,
    StatusResponse,
    VerificationKey,
)


SAMPLE_PROOF = {
    "pi_a": ["1", "2", "1"],
    "pi_b": [["3", "4"], ["5", "6"], ["1", "0"]],
    "pi_c": ["7", "8", "1"],
    "protocol": "groth16",
    "curve": "bn128",
}

SAMPLE_VK = {
    "protocol": "groth16",
    "curve": "bn128",
    "nPublic": 1,
    "vk_alpha_1": ["1", "2", "1"],
    "IC": [["1", "2", "1"], ["3", "4", "1"]],
}


def make_response(status_code: int = 200, body=None, url: str = "https://relay.test") -> requests.Response:
    """Build a real requests.Response with the given body."""
    response = requests.Response()
    response.status_code = status_code
    response.url = url
    if body is None:
        content = b""
    elif isinstance(body, (dict, list)):
        content = json.dumps(body).encode()
    else:
        content = str(body).encode()
    response._content = content
    response.encoding = "utf-8"
    return response


class ScriptedRng(random.Random):
    """Random source whose randint returns scripted values."""

    def __init__(self, values):
        super().__init__(0)
        self._values = list(values)

    def randint(self, a, b):
        return self._values.pop(0)


class AdderProvider(ArtifactProvider):
    """Stub toolchain for an a + b circuit: the only public signal is the sum."""

    def __init__(self, fail_on: Optional[set[int]] = None):
        self.inputs: list[CircuitInput] = []
        self.fail_on = fail_on or set()

    def generate(self, circuit_input: CircuitInput, attempt_n: int) -> ProofArtifact:
        self.inputs.append(circuit_input)
        if attempt_n in self.fail_on:
            raise ArtifactError("witness calculation failed", command="snarkjs wtns calculate", stderr="boom")
        total = sum(circuit_input.signals.values())
        return ProofArtifact(proof=dict(SAMPLE_PROOF), public_signals=[str(total)])


class ScriptedStatusSource:
    """get_status() replays a script of StatusResponse objects or exceptions."""

    def __init__(self, script):
        self.script = list(script)
        self.calls: list[str] = []

    def get_status(self, job_id: str) -> StatusResponse:
        self.calls.append(job_id)
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def status(value: Optional[str], tx_hash: Optional[str] = None) -> StatusResponse:
    body = {}
    if value is not None:
        body["status"] = value
    if tx_hash is not None:
        body["txHash"] = tx_hash
    return StatusResponse.parse(json.dumps(body))


@pytest.fixture(autouse=True)
def reset_logging():
    # CLI runs install handlers bound to CliRunner's streams
    yield
    logging.getLogger("proofrelay").handlers = []


@pytest.fixture
def relay_config(tmp_path):
    return RelayConfig(
        base_url="https://relay.test/api/v1",
        api_key_env="TEST_RELAY_KEY",
        total_attempts=3,
        attempt_delay=0,
        poll_interval=5,
        empty_status_interval=1,
        poll_timeout=60,
        vkey_path=str(tmp_path / "verification_key.json"),
        wasm_path=str(tmp_path / "circuit.wasm"),
        zkey_path=str(tmp_path / "circuit_final.zkey"),
        work_dir=str(tmp_path / "attempts"),
        ledger_path=str(tmp_path / "results" / "submissions.csv"),
        audit_log_path=str(tmp_path / "results" / "relay_responses.log"),
        seed=1234,
    )


@pytest.fixture
def verification_key():
    return VerificationKey(data=dict(SAMPLE_VK))


@pytest.fixture
def artifact():
    return ProofArtifact(proof=dict(SAMPLE_PROOF), public_signals=["42"])


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transient():
    return TransientError("connection reset")
