"""Tests for SnarkjsProvider.

subprocess.run is patched; the fake writes the files snarkjs would write.
"""

import json
import subprocess
from unittest.mock import patch

import pytest

from proofrelay.errors import ArtifactError
from proofrelay.provider import SnarkjsProvider
from proofrelay.schemas import CircuitInput


@pytest.fixture
def provider(tmp_path):
    return SnarkjsProvider(
        wasm_path=tmp_path / "circuit.wasm",
        zkey_path=tmp_path / "circuit_final.zkey",
        work_dir=tmp_path / "attempts",
        snarkjs_bin="npx snarkjs",
        timeout=30,
    )


SUBCOMMANDS = {"wtns", "calculate", "groth16", "prove", "verify"}


def fake_snarkjs(public=("42",), verify_stdout="[INFO]  snarkJS: OK!", fail_on=None):
    """Build a subprocess.run replacement emulating snarkjs."""
    calls = []

    def run(cmd, cwd, **kwargs):
        calls.append((cmd, cwd, kwargs))
        sub = [c for c in cmd if c in SUBCOMMANDS][:2]
        if fail_on and sub == fail_on:
            return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="Error: constraint doesn't match")
        if sub == ["groth16", "prove"]:
            with open(f"{cwd}/proof.json", "w") as f:
                json.dump({"pi_a": ["1", "2", "1"], "protocol": "groth16"}, f)
            with open(f"{cwd}/public.json", "w") as f:
                json.dump(list(public), f)
        stdout = verify_stdout if sub == ["groth16", "verify"] else ""
        return subprocess.CompletedProcess(cmd, 0, stdout=stdout, stderr="")

    run.calls = calls
    return run


def test_generate_runs_witness_then_prove(provider, tmp_path):
    run = fake_snarkjs()
    with patch("proofrelay.provider.subprocess.run", side_effect=run):
        artifact = provider.generate(CircuitInput({"a": 7, "b": 35}), 1)

    assert artifact.public_signals == ["42"]
    assert artifact.proof["protocol"] == "groth16"

    workdir = tmp_path / "attempts" / "attempt-0001"
    assert json.loads((workdir / "input.json").read_text()) == {"a": "7", "b": "35"}

    (wtns_cmd, cwd, kwargs), (prove_cmd, _, _) = run.calls
    assert wtns_cmd[:4] == ["npx", "snarkjs", "wtns", "calculate"]
    assert wtns_cmd[4] == str((tmp_path / "circuit.wasm").resolve())
    assert prove_cmd[:4] == ["npx", "snarkjs", "groth16", "prove"]
    assert cwd == str(workdir)
    assert kwargs["timeout"] == 30
    assert kwargs["check"] is False


def test_each_attempt_gets_its_own_directory(provider, tmp_path):
    with patch("proofrelay.provider.subprocess.run", side_effect=fake_snarkjs()):
        provider.generate(CircuitInput({"a": 1, "b": 2}), 1)
        provider.generate(CircuitInput({"a": 3, "b": 4}), 2)

    assert (tmp_path / "attempts" / "attempt-0001" / "input.json").exists()
    assert json.loads((tmp_path / "attempts" / "attempt-0002" / "input.json").read_text()) == {"a": "3", "b": "4"}


def test_nonzero_exit_raises_artifact_error(provider):
    run = fake_snarkjs(fail_on=["wtns", "calculate"])
    with patch("proofrelay.provider.subprocess.run", side_effect=run):
        with pytest.raises(ArtifactError) as exc_info:
            provider.generate(CircuitInput({"a": 1, "b": 2}), 1)

    assert "constraint doesn't match" in exc_info.value.stderr
    assert "wtns calculate" in exc_info.value.command
    # Proving never started
    assert len(run.calls) == 1


def test_timeout_raises_artifact_error(provider):
    with patch(
        "proofrelay.provider.subprocess.run",
        side_effect=subprocess.TimeoutExpired(cmd="snarkjs", timeout=30),
    ):
        with pytest.raises(ArtifactError, match="timed out"):
            provider.generate(CircuitInput({"a": 1, "b": 2}), 1)


def test_missing_binary_raises_artifact_error(provider):
    with patch("proofrelay.provider.subprocess.run", side_effect=FileNotFoundError("npx")):
        with pytest.raises(ArtifactError, match="Could not run npx"):
            provider.generate(CircuitInput({"a": 1, "b": 2}), 1)


def test_missing_output_raises_artifact_error(provider):
    def run(cmd, cwd, **kwargs):
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    with patch("proofrelay.provider.subprocess.run", side_effect=run):
        with pytest.raises(ArtifactError, match="Could not read proof output"):
            provider.generate(CircuitInput({"a": 1, "b": 2}), 1)


class TestLocalVerification:

    def test_requires_vkey(self, tmp_path):
        with pytest.raises(ValueError):
            SnarkjsProvider(tmp_path / "c.wasm", tmp_path / "c.zkey", tmp_path, verify_locally=True)

    def test_runs_verify_after_prove(self, tmp_path):
        provider = SnarkjsProvider(
            tmp_path / "c.wasm", tmp_path / "c.zkey", tmp_path / "attempts",
            vkey_path=tmp_path / "vk.json", verify_locally=True,
        )
        run = fake_snarkjs()
        with patch("proofrelay.provider.subprocess.run", side_effect=run):
            provider.generate(CircuitInput({"a": 7, "b": 35}), 1)

        assert [c[0][1:3] for c in run.calls] == [
            ["wtns", "calculate"], ["groth16", "prove"], ["groth16", "verify"],
        ]

    def test_verify_not_ok_raises(self, tmp_path):
        provider = SnarkjsProvider(
            tmp_path / "c.wasm", tmp_path / "c.zkey", tmp_path / "attempts",
            vkey_path=tmp_path / "vk.json", verify_locally=True,
        )
        with patch("proofrelay.provider.subprocess.run", side_effect=fake_snarkjs(verify_stdout="Invalid proof")):
            with pytest.raises(ArtifactError, match="Local verification"):
                provider.generate(CircuitInput({"a": 7, "b": 35}), 1)


def test_validate_reports_missing_files(provider, tmp_path):
    report = provider.validate()
    assert len(report["errors"]) == 2

    (tmp_path / "circuit.wasm").write_bytes(b"\0asm")
    (tmp_path / "circuit_final.zkey").write_bytes(b"zkey")
    report = provider.validate()
    assert report["errors"] == []
    assert report["warnings"]


def test_unwritable_work_dir_raises_artifact_error(provider, tmp_path):
    (tmp_path / "attempts").write_text("not a directory")

    with patch("proofrelay.provider.subprocess.run") as run:
        with pytest.raises(ArtifactError, match="Could not prepare"):
            provider.generate(CircuitInput({"a": 7, "b": 35}), 1)
    run.assert_not_called()


def test_base_provider_validate_is_empty():
    from conftest import AdderProvider

    assert AdderProvider().validate() == {"errors": [], "warnings": []}
