from __future__ import annotations

"""
Error taxonomy for Proof Services.

Every failure that leaves a pipeline stage is one of the typed errors below,
never a raw ``OSError`` or ``httpx`` exception. Each error carries:

- ``message`` (str): human-readable cause
- ``code`` (str): stable machine code (e.g. "program_hash_mismatch")
- ``status_code`` (int): HTTP status used by the API surface
- ``details`` (dict|None): optional structured diagnostics

``str(err)`` is prefixed with the kind's label so log lines and CLI output
name the failing condition::

    >>> str(InvalidInput("Invalid program_hash format (expected 32-byte hex): x"))
    'Invalid Input Data: Invalid program_hash format (expected 32-byte hex): x'

``to_problem()`` returns an RFC 7807 "problem+json" dict.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

DEFAULT_ERROR_DOCS_BASE = "https://docs.proof-services.dev/errors"


@dataclass(eq=False)
class ProofServiceError(Exception):
    message: str
    status_code: int = 500
    code: str = "internal_error"
    details: Optional[Mapping[str, Any]] = None
    label: str = "Internal Error"

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.label}: {self.message}"

    # --- RFC 7807 helpers -------------------------------------------------- #

    def type_uri(self) -> str:
        return f"{DEFAULT_ERROR_DOCS_BASE}#{self.code}"

    def to_problem(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "type": self.type_uri(),
            "title": self.label,
            "status": self.status_code,
            "code": self.code,
            "detail": self.message,
        }
        if self.details:
            body["details"] = dict(self.details)
        return body


# ------------------------------ Concrete types ------------------------------- #


class ConfigError(ProofServiceError):
    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message, 500, "config_error", details, "Configuration Error")


class InvalidInput(ProofServiceError):
    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message, 400, "invalid_input", details, "Invalid Input Data")


class ProgramNotFoundInRegistry(ProofServiceError):
    def __init__(self, program_hash: str):
        super().__init__(
            f"Hash {program_hash}",
            404,
            "program_not_found",
            {"program_hash": program_hash},
            "Program Not Found in Registry",
        )


class ProgramDownloadFailed(ProofServiceError):
    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message, 502, "program_download_failed", details, "Program Download Failed")


class ProgramHashMismatch(ProofServiceError):
    def __init__(self, expected: str, got: str):
        super().__init__(
            f"Hash Mismatch (Expected {expected}, Got {got})",
            422,
            "program_hash_mismatch",
            {"expected": expected, "got": got},
            "Program Verification Failed",
        )
        self.expected = expected
        self.got = got


class ProvingError(ProofServiceError):
    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message, 500, "proving_error", details, "Proving Error")


class IoError(ProofServiceError):
    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message, 500, "io_error", details, "Filesystem Error")


class BlockchainError(ProofServiceError):
    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message, 502, "blockchain_error", details, "Blockchain Interaction Error")


class ContractCallError(ProofServiceError):
    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message, 502, "contract_call_error", details, "Contract Call Error")


class NetworkError(ProofServiceError):
    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message, 502, "network_error", details, "Network Error")


class InvalidUrl(ProofServiceError):
    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message, 422, "invalid_url", details, "Invalid Program Location URL")


class SerdeError(ProofServiceError):
    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message, 400, "serde_error", details, "Serialization/Deserialization Error")


class TempDirError(ProofServiceError):
    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message, 500, "temp_dir_error", details, "Temporary Directory Error")


class HexError(ProofServiceError):
    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message, 400, "hex_error", details, "Hex Decoding Error")


class InternalError(ProofServiceError):
    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message, 500, "internal_error", details, "Internal Error")


__all__ = [
    "ProofServiceError",
    "ConfigError",
    "InvalidInput",
    "ProgramNotFoundInRegistry",
    "ProgramDownloadFailed",
    "ProgramHashMismatch",
    "ProvingError",
    "IoError",
    "BlockchainError",
    "ContractCallError",
    "NetworkError",
    "InvalidUrl",
    "SerdeError",
    "TempDirError",
    "HexError",
    "InternalError",
]
