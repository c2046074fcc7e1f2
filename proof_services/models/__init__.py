"""
Request / response models for proof jobs.

- proof        : ProgramLocation, ProvingMode, ProofRequest, ProofResult
- coprocessor  : DataBundle (+ receipts/logs/slots/txs), SizeLimits, BundleProofRequest
- common       : hex / hash / address helpers and pydantic type aliases
"""

from __future__ import annotations

from .coprocessor import (
    BundleProofRequest,
    CoprocessorInputBundle,
    DataBundle,
    Log,
    Receipt,
    SizeLimits,
    StorageSlot,
    Transaction,
)
from .proof import ProgramLocation, ProofRequest, ProofResult, ProvingMode

__all__ = [
    "BundleProofRequest",
    "CoprocessorInputBundle",
    "DataBundle",
    "Log",
    "Receipt",
    "SizeLimits",
    "StorageSlot",
    "Transaction",
    "ProgramLocation",
    "ProofRequest",
    "ProofResult",
    "ProvingMode",
]
