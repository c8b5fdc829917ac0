"""
Artifact schemas - what the proving toolchain consumes and produces.

CircuitInput is generated fresh for every attempt.
ProofArtifact is the (proof, publicSignals) pair produced for one input.
VerificationKey is loaded once and shared by every attempt.
"""

import json
import random
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Sequence


@dataclass(frozen=True)
class CircuitInput:
    """
    Named circuit signals for a single attempt.

    Attributes:
        signals: Mapping of signal name to integer value
    """
    signals: Mapping[str, int]

    def __post_init__(self):
        if not self.signals:
            raise ValueError("CircuitInput requires at least one signal")
        object.__setattr__(self, "signals", MappingProxyType(dict(self.signals)))

    @classmethod
    def generate(
        cls,
        rng: random.Random,
        names: Sequence[str] = ("a", "b"),
        low: int = 1,
        high: int = 100,
    ) -> "CircuitInput":
        """Draw one value per signal, uniformly in [low, high]."""
        if low > high:
            raise ValueError(f"low ({low}) must be <= high ({high})")
        return cls({name: rng.randint(low, high) for name in names})

    def to_dict(self) -> dict[str, str]:
        """Serialize for input.json (snarkjs wants decimal strings)."""
        return {name: str(value) for name, value in self.signals.items()}


@dataclass(frozen=True)
class ProofArtifact:
    """
    A proof and its public signals as produced by the toolchain.

    Attributes:
        proof: The proof object (pi_a, pi_b, pi_c, protocol, curve)
        public_signals: Public signals in circuit order
    """
    proof: dict[str, Any]
    public_signals: list[Any] = field(default_factory=list)

    @classmethod
    def from_files(cls, proof_path: Path, public_path: Path) -> "ProofArtifact":
        """Load proof.json and public.json written by `groth16 prove`."""
        with open(proof_path) as f:
            proof = json.load(f)
        with open(public_path) as f:
            public_signals = json.load(f)
        if not isinstance(proof, dict):
            raise ValueError(f"{proof_path} does not contain a JSON object")
        if not isinstance(public_signals, list):
            raise ValueError(f"{public_path} does not contain a JSON array")
        return cls(proof=proof, public_signals=public_signals)


@dataclass(frozen=True)
class VerificationKey:
    """The circuit verification key, sent inline with every submission."""
    data: dict[str, Any]
    path: Path | None = None

    @classmethod
    def load(cls, path: Path) -> "VerificationKey":
        with open(path) as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path} does not contain a JSON object")
        return cls(data=data, path=Path(path))
