"""
proofrelay - Proof submission and job tracking for verification relays

Generates Groth16 proofs with snarkjs, submits them to a relay over HTTP,
polls each job to a terminal status and keeps a CSV ledger of the results.
"""

__version__ = "0.1.0"


__all__ = ["RelayConfig", "load_config", "get_proofrelay_home"]

from .config import RelayConfig, load_config, get_proofrelay_home
