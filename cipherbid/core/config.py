"""
Auction house configuration for cipherbid.

Defines the simulated backend latencies, display parameters and
logging options. Values come from defaults, then a .env file and
CIPHERBID_* environment variables, then an optional JSON file.
"""

import json
import os
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, field_validator

from cipherbid.utils.validation import validate_hex_string

ENV_PREFIX = "CIPHERBID_"


class HouseConfig(BaseModel):
    """Auction-house-wide configuration parameters"""

    # Simulated backends
    submission_delay_ms: int = Field(default=2000, ge=0)  # Chain acknowledgement latency
    submission_failure_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    commit_delay_ms: int = Field(default=0, ge=0)  # Encryption backend latency
    commitment_key: Optional[str] = None  # 32-byte hex sealing key; random if unset

    # Display
    tick_interval: float = Field(default=1.0, gt=0)  # Countdown refresh in seconds
    redaction_edge: int = Field(default=8, ge=1, le=32)  # Visible chars each side

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = False
    log_dir: Path = Path("logs")

    @field_validator("commitment_key")
    @classmethod
    def _check_commitment_key(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        valid, err = validate_hex_string(value, "commitment_key", expected_bytes=32)
        if not valid:
            raise ValueError(err)
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level {value}")
        return level

    @property
    def commitment_key_bytes(self) -> Optional[bytes]:
        if self.commitment_key is None:
            return None
        key = self.commitment_key
        return bytes.fromhex(key[2:] if key.startswith("0x") else key)


def _from_environment() -> dict:
    """Collect CIPHERBID_* variables keyed by field name."""
    values = {}
    for name in HouseConfig.model_fields:
        raw = os.environ.get(ENV_PREFIX + name.upper())
        if raw is not None:
            values[name] = raw
    return values


def load_config(config_path: Optional[str] = None, env_file: Optional[str] = None) -> HouseConfig:
    """
    Load configuration from environment and optional JSON file.

    Args:
        config_path: Optional path to a JSON config file
        env_file: Optional .env path (defaults to ./.env when present)

    Returns:
        HouseConfig instance

    Raises:
        pydantic.ValidationError: if any value is out of range
    """
    load_dotenv(env_file or find_dotenv(usecwd=True))

    values = _from_environment()

    if config_path:
        file_values = json.loads(Path(config_path).read_text())
        if not isinstance(file_values, dict):
            raise ValueError(f"Config file {config_path} must contain a JSON object")
        values.update(file_values)

    return HouseConfig(**values)
