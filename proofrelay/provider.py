"""
Artifact providers - produce a proof for a circuit input.

The proving toolchain is an external binary. SnarkjsProvider drives it
through three commands, each attempt in its own working directory:

    snarkjs wtns calculate <wasm> input.json witness.wtns
    snarkjs groth16 prove <zkey> witness.wtns proof.json public.json
    snarkjs groth16 verify <vkey> public.json proof.json   (optional)

Any failure surfaces as ArtifactError; the orchestrator turns that into a
failed ledger row instead of stopping the run.
"""

import json
import logging
import shlex
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from proofrelay.errors import ArtifactError
from proofrelay.schemas import CircuitInput, ProofArtifact

logger = logging.getLogger(__name__)


class ArtifactProvider(ABC):
    """Turns a CircuitInput into a ProofArtifact."""

    @abstractmethod
    def generate(self, circuit_input: CircuitInput, attempt_n: int) -> ProofArtifact:
        """
        Produce a proof for the given input.

        Args:
            circuit_input: Signals for this attempt
            attempt_n: Attempt number, used to isolate working files

        Returns:
            ProofArtifact for the input

        Raises:
            ArtifactError: If the toolchain fails
        """
        pass

    def validate(self) -> dict[str, list[str]]:
        """Check setup before a run. Returns 'errors' and 'warnings' lists."""
        return {"errors": [], "warnings": []}


class SnarkjsProvider(ArtifactProvider):
    """Generate Groth16 proofs with the snarkjs CLI."""

    def __init__(
        self,
        wasm_path: Path | str,
        zkey_path: Path | str,
        work_dir: Path | str,
        snarkjs_bin: str = "snarkjs",
        timeout: float = 300.0,
        vkey_path: Optional[Path | str] = None,
        verify_locally: bool = False,
    ):
        """
        Initialize the provider.

        Args:
            wasm_path: Compiled circuit (circuit_js/circuit.wasm)
            zkey_path: Final proving key from the setup ceremony
            work_dir: Root under which per-attempt directories are created
            snarkjs_bin: snarkjs command, may include a launcher ("npx snarkjs")
            timeout: Per-command timeout in seconds
            vkey_path: Verification key, required when verify_locally is set
            verify_locally: Run `groth16 verify` before handing the proof back
        """
        self.wasm_path = Path(wasm_path).expanduser().resolve()
        self.zkey_path = Path(zkey_path).expanduser().resolve()
        self.work_dir = Path(work_dir).expanduser()
        self.snarkjs = shlex.split(snarkjs_bin)
        self.timeout = timeout
        self.vkey_path = Path(vkey_path).expanduser().resolve() if vkey_path else None
        self.verify_locally = verify_locally

        if verify_locally and self.vkey_path is None:
            raise ValueError("verify_locally requires vkey_path")

    def validate(self) -> dict[str, list[str]]:
        """
        Check that the circuit files exist.

        Returns:
            Dictionary with 'errors' and 'warnings' lists
        """
        errors = []
        warnings = []
        if not self.wasm_path.exists():
            errors.append(f"Circuit wasm not found: {self.wasm_path}")
        if not self.zkey_path.exists():
            errors.append(f"Proving key not found: {self.zkey_path}")
        if self.verify_locally and self.vkey_path and not self.vkey_path.exists():
            errors.append(f"Verification key not found: {self.vkey_path}")
        if not self.verify_locally:
            warnings.append("Local verification disabled; proofs are sent unchecked")
        return {"errors": errors, "warnings": warnings}

    def attempt_dir(self, attempt_n: int) -> Path:
        return self.work_dir / f"attempt-{attempt_n:04d}"

    def _run(self, args: list[str], cwd: Path) -> subprocess.CompletedProcess:
        cmd = self.snarkjs + args
        cmd_str = " ".join(shlex.quote(c) for c in cmd)
        logger.debug(f"$ {cmd_str}")
        try:
            result = subprocess.run(
                cmd,
                cwd=str(cwd),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise ArtifactError(f"Command timed out after {self.timeout}s", command=cmd_str) from e
        except OSError as e:
            raise ArtifactError(f"Could not run {self.snarkjs[0]}: {e}", command=cmd_str) from e

        if result.returncode != 0:
            stderr = (result.stderr or result.stdout or "").strip()
            raise ArtifactError(
                f"Command exited with status {result.returncode}: {cmd_str}",
                command=cmd_str,
                stderr=stderr,
            )
        return result

    def generate(self, circuit_input: CircuitInput, attempt_n: int) -> ProofArtifact:
        workdir = self.attempt_dir(attempt_n)
        try:
            workdir.mkdir(parents=True, exist_ok=True)
            with open(workdir / "input.json", "w") as f:
                json.dump(circuit_input.to_dict(), f)
        except OSError as e:
            raise ArtifactError(f"Could not prepare {workdir}: {e}") from e

        self._run(["wtns", "calculate", str(self.wasm_path), "input.json", "witness.wtns"], workdir)
        self._run(
            ["groth16", "prove", str(self.zkey_path), "witness.wtns", "proof.json", "public.json"],
            workdir,
        )

        if self.verify_locally:
            result = self._run(
                ["groth16", "verify", str(self.vkey_path), "public.json", "proof.json"],
                workdir,
            )
            if "OK" not in result.stdout:
                raise ArtifactError(
                    "Local verification did not report OK",
                    command="groth16 verify",
                    stderr=result.stdout.strip(),
                )

        try:
            artifact = ProofArtifact.from_files(workdir / "proof.json", workdir / "public.json")
        except (OSError, ValueError) as e:
            raise ArtifactError(f"Could not read proof output: {e}") from e

        logger.debug(f"Proof {attempt_n}: public signals {artifact.public_signals}")
        return artifact
