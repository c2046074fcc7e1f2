from __future__ import annotations

"""
Proof job models

- ProgramLocation: where to obtain a program binary (remote URL or local path).
  Wire form is externally tagged: {"RemoteUrl": "https://..."} or
  {"LocalPath": "/path/to/program.elf"}.

- ProvingMode: which proving pipeline to run (Fast / Full / FullWithEvm).

- ProofRequest: a plain proving job. The hash and input formats are checked
  by the job orchestrator (so failures surface as InvalidInput), not here.

- ProofResult: normalized output of a proving run.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_serializer, model_validator

_URL_ADAPTER = TypeAdapter(AnyUrl)


class ProvingMode(str, Enum):
    FAST = "Fast"  # single phase; development/testing only
    FULL = "Full"  # base proof + recursive (embed) proof
    FULL_WITH_EVM = "FullWithEvm"  # Full + external on-chain verifier artifacts

    @classmethod
    def _missing_(cls, value: object) -> Optional["ProvingMode"]:
        if not isinstance(value, str):
            return None
        key = value.strip().replace("_", "").replace("-", "").lower()
        aliases = {
            "fast": cls.FAST,
            "full": cls.FULL,
            "fullwithevm": cls.FULL_WITH_EVM,
            "evm": cls.FULL_WITH_EVM,
            "fullwithexternalverifierartifact": cls.FULL_WITH_EVM,
        }
        return aliases.get(key)


class ProgramLocation(BaseModel):
    """Exactly one of ``remote_url`` / ``local_path`` is set."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    remote_url: Optional[str] = Field(default=None, alias="RemoteUrl")
    local_path: Optional[Path] = Field(default=None, alias="LocalPath")

    @field_validator("remote_url")
    @classmethod
    def _check_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        _URL_ADAPTER.validate_python(v)
        return v.strip()

    @model_validator(mode="after")
    def _exactly_one(self) -> "ProgramLocation":
        if (self.remote_url is None) == (self.local_path is None):
            raise ValueError("ProgramLocation requires exactly one of RemoteUrl or LocalPath")
        return self

    @model_serializer
    def _tagged(self) -> Dict[str, Any]:
        if self.remote_url is not None:
            return {"RemoteUrl": self.remote_url}
        return {"LocalPath": str(self.local_path)}

    @classmethod
    def remote(cls, url: str) -> "ProgramLocation":
        return cls(remote_url=url)

    @classmethod
    def local(cls, path: Path | str) -> "ProgramLocation":
        return cls(local_path=Path(path))

    @property
    def is_remote(self) -> bool:
        return self.remote_url is not None

    def __str__(self) -> str:
        return self.remote_url if self.remote_url is not None else str(self.local_path)


class ProofRequest(BaseModel):
    """
    A plain proving job.

    Fields
    ------
    program_hash: str
        SHA-256 of the program binary, 32-byte hex (optional 0x).
    inputs: str
        Hex-encoded bytes fed to the program's stdin.
    proving_type: ProvingMode
        Proving pipeline; defaults to Full.
    program_location_override: Optional[ProgramLocation]
        Skip the registry and fetch from here instead.
    eth_rpc_url_override / registry_address_override: Optional[str]
        Per-request replacements for the registry endpoint defaults.
    """

    program_hash: str
    inputs: str = ""
    proving_type: ProvingMode = ProvingMode.FULL
    program_location_override: Optional[ProgramLocation] = None
    eth_rpc_url_override: Optional[str] = None
    registry_address_override: Optional[str] = None


class ProofResult(BaseModel):
    """
    Normalized proving output. ``program_hash`` and ``inputs`` are filled in
    by the job orchestrator after the prover returns.
    """

    public_values: str = Field(default="", description="Hex-encoded public values.")
    proof: str = Field(default="", description="Hex-encoded engine-defined proof blob.")
    proving_type: ProvingMode = ProvingMode.FULL
    output_dir: Optional[str] = Field(default=None, description="Artifact directory, when one was created.")
    program_hash: str = ""
    inputs: str = Field(default="", description="Hex-encoded engine input.")

    @model_serializer(mode="wrap")
    def _skip_empty_output_dir(self, handler) -> Dict[str, Any]:
        data = handler(self)
        if data.get("output_dir") is None:
            data.pop("output_dir", None)
        return data


__all__ = ["ProvingMode", "ProgramLocation", "ProofRequest", "ProofResult"]
