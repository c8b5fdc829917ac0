"""
Configuration management for proofrelay.

Loads config.yaml from the proofrelay home directory
($PROOFRELAY_HOME, default ~/.config/proofrelay) and the optional
env_file it points to. The relay credential is never stored in the
YAML file; it is read from the environment variable named by api_key_env.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from proofrelay.errors import ConfigError


DEFAULT_BASE_URL = "https://relayer-api.horizenlabs.io/api/v1"

TERMINAL_POLICIES = ("strict", "permissive")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def get_proofrelay_home() -> Path:
    """Return the proofrelay home directory."""
    env_home = os.environ.get("PROOFRELAY_HOME")
    if env_home:
        return Path(env_home).expanduser()
    return Path("~/.config/proofrelay").expanduser()


@dataclass
class RelayConfig:
    """Complete runtime configuration for a submission run."""

    # Relay
    base_url: str = DEFAULT_BASE_URL
    api_key_env: str = "RELAY_API_KEY"
    request_timeout: float = 30.0

    # Orchestrator
    total_attempts: int = 10
    attempt_delay: float = 30.0
    submit_retries: int = 0
    submit_backoff: float = 5.0

    # Poller
    poll_interval: float = 5.0
    empty_status_interval: float = 1.0
    poll_timeout: Optional[float] = 600.0
    terminal_policy: str = "strict"

    # Proving toolchain
    snarkjs_bin: str = "snarkjs"
    wasm_path: str = "build/circuit_js/circuit.wasm"
    zkey_path: str = "build/circuit_final.zkey"
    vkey_path: str = "build/verification_key.json"
    work_dir: str = "build/attempts"
    prove_timeout: float = 300.0
    verify_locally: bool = False

    # Circuit inputs
    signals: list[str] = field(default_factory=lambda: ["a", "b"])
    input_min: int = 1
    input_max: int = 100
    seed: Optional[int] = None

    # Outputs
    ledger_path: str = "results/submissions.csv"
    audit_log_path: str = "results/relay_responses.log"

    # Logging
    log_level: str = "INFO"
    log_format: str = "pretty"
    log_file: Optional[str] = None

    env_file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RelayConfig":
        """Build from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def get_api_key(self) -> str:
        """Read the relay credential from the environment."""
        api_key = os.environ.get(self.api_key_env, "").strip()
        if not api_key:
            raise ConfigError(
                f"Relay credential not set: export {self.api_key_env} or add it to {self.env_file or '.env'}"
            )
        return api_key

    def validate(self) -> None:
        """Validate value ranges."""
        if not self.base_url:
            raise ConfigError("base_url is required")
        if self.terminal_policy not in TERMINAL_POLICIES:
            raise ConfigError(
                f"terminal_policy must be one of {', '.join(TERMINAL_POLICIES)}, got {self.terminal_policy!r}"
            )
        if self.total_attempts < 0:
            raise ConfigError("total_attempts must be >= 0")
        if self.submit_retries < 0:
            raise ConfigError("submit_retries must be >= 0")
        for name in ("poll_interval", "empty_status_interval", "request_timeout", "prove_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be > 0")
        for name in ("attempt_delay", "submit_backoff"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0")
        if self.poll_timeout is not None and self.poll_timeout < 0:
            raise ConfigError("poll_timeout must be >= 0 (0 disables it)")
        if not self.signals:
            raise ConfigError("signals must name at least one circuit input")
        if self.input_min > self.input_max:
            raise ConfigError(
                f"input_min ({self.input_min}) must be <= input_max ({self.input_max})"
            )
        if str(self.log_level).upper() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")
        if self.log_format not in ("pretty", "plain"):
            raise ConfigError(f"log_format must be 'pretty' or 'plain', got {self.log_format!r}")

    def __repr__(self) -> str:
        return (
            f"RelayConfig(base_url={self.base_url}, attempts={self.total_attempts}, "
            f"policy={self.terminal_policy})"
        )


def load_config(config_path: Optional[Path] = None) -> RelayConfig:
    """
    Load proofrelay configuration from YAML.

    Args:
        config_path: Path to config file. Defaults to <home>/config.yaml

    Returns:
        Validated RelayConfig instance

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigError: If the config is invalid
    """
    if config_path is None:
        config_path = get_proofrelay_home() / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(
            f"proofrelay config.yaml not found at {config_path}. Run 'proofrelay init' first."
        )

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {config_path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")

    config = RelayConfig.from_dict(data)

    env_file = config.env_file
    if env_file is None:
        default_env = config_path.parent / ".env"
        if default_env.exists():
            env_file = str(default_env)
    if env_file:
        env_path = Path(env_file).expanduser()
        if env_path.exists():
            load_dotenv(env_path, override=False)
        config.env_file = str(env_path)

    config.validate()
    return config
