from __future__ import annotations

"""
Configuration loader for Proof Services.

- Reads environment variables (optionally from `.env`) via pydantic-settings.
- Exposes a cached `get_settings()` accessor.

Environment variables:
    ETH_RPC_URL                   (str, default "http://127.0.0.1:8545")  : registry chain endpoint
    REGISTRY_CONTRACT_ADDRESS     (hex, default zero address)             : ProgramRegistry contract
    TEMP_DIR_BASE                 (str, default "/tmp/pico-service")      : base for per-request workspaces
    LOG_LEVEL                     (str, default "INFO")
    LOG_FORMAT                    (str, default "json")                   : "json" or "console"

Prover:
    PROVER_CMD                    (str, default "cargo pico")             : proving engine CLI
    PROVER_FIELD                  (str, default "kb")                     : field used for EVM proving
    PROVER_SETUP_DIR              (str, optional)                         : cache for EVM proving/verifying keys

HTTP:
    HTTP_TIMEOUT_S                (float, default 60)                     : outbound HTTP timeout
    HOST / PORT                   (default 0.0.0.0 / 8080)                : API surface bind address
"""

import re
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

ZERO_ADDRESS = "0x" + "00" * 20


class Settings(BaseSettings):
    # Chain / registry
    eth_rpc_url: str = Field("http://127.0.0.1:8545", description="Registry chain JSON-RPC endpoint")
    registry_contract_address: str = Field(
        ZERO_ADDRESS, description="ProgramRegistry contract address (0x + 40 hex)"
    )

    # Filesystem
    temp_dir_base: Path = Field(
        Path("/tmp/pico-service"), description="Base directory for per-request workspaces"
    )

    # Prover
    prover_cmd: str = Field("cargo pico", description="Proving engine CLI command")
    prover_field: str = Field("kb", description="Field used for EVM proving")
    prover_setup_dir: Optional[Path] = Field(
        default=None, description="Optional cache holding EVM proving/verifying keys"
    )

    # HTTP
    http_timeout_s: float = Field(60.0, gt=0, description="Outbound HTTP timeout in seconds")
    host: str = "0.0.0.0"
    port: int = 8080

    # Logging
    log_level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_format: str = Field("json", description='"json" or "console"')

    model_config = SettingsConfigDict(
        env_prefix="", env_file=".env", case_sensitive=False, extra="ignore"
    )

    @field_validator("registry_contract_address")
    @classmethod
    def _check_address(cls, v: str) -> str:
        v = v.strip()
        if not _ADDRESS_RE.match(v):
            raise ValueError("REGISTRY_CONTRACT_ADDRESS must be 0x + 40 hex chars")
        return v

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.strip().upper() or "INFO"

    @field_validator("prover_setup_dir", mode="before")
    @classmethod
    def _empty_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()  # pydantic-settings will read .env automatically


__all__ = ["Settings", "get_settings", "ZERO_ADDRESS"]
