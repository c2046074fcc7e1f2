from __future__ import annotations

"""
Coprocessor ("bundle") job models.

A coprocessor job feeds structured blockchain facts (receipts, storage slots,
transactions) to the user's zkVM program, together with the buffer limits the
program needs to size its internal arrays. The orchestrator owns the encoding
of ``CoprocessorInputBundle``; the program reads it back from stdin.
"""

import json
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt

from .common import Address, Bytes32, HexData, OptionalQuantity, Quantity
from .proof import ProgramLocation, ProvingMode

# Engine word size; every SizeLimits field must be a positive multiple of it.
WORD_SIZE = 32


class Log(BaseModel):
    address: Address
    topics: List[Bytes32] = Field(default_factory=list)
    data_hex: HexData = ""


class Receipt(BaseModel):
    transaction_hash: Bytes32
    status: OptionalQuantity = None  # 1 success, 0 failure
    logs: List[Log] = Field(default_factory=list)
    raw_data_hex: HexData = ""


class StorageSlot(BaseModel):
    address: Address
    slot: Bytes32
    value: Bytes32
    block_number: Quantity


class Transaction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transaction_hash: Bytes32
    from_: Address = Field(alias="from")
    to: Optional[Address] = None
    value: Quantity = 0
    input_data_hex: HexData = ""
    raw_data_hex: HexData = ""


class DataBundle(BaseModel):
    """Blockchain data inputs; every list is independently optional."""

    receipts: Optional[List[Receipt]] = None
    storage_slots: Optional[List[StorageSlot]] = None
    transactions: Optional[List[Transaction]] = None


class SizeLimits(BaseModel):
    """Buffer limits for the coprocessor SDK; checked by the orchestrator."""

    max_receipt_size: NonNegativeInt = 0
    max_storage_size: NonNegativeInt = 0
    max_tx_size: NonNegativeInt = 0

    def invalid_fields(self) -> List[str]:
        """Names of limits that are zero or not a multiple of WORD_SIZE."""
        return [
            name
            for name, value in (
                ("max_receipt_size", self.max_receipt_size),
                ("max_storage_size", self.max_storage_size),
                ("max_tx_size", self.max_tx_size),
            )
            if value <= 0 or value % WORD_SIZE != 0
        ]


class BundleProofRequest(BaseModel):
    program_hash: str
    blockchain_data: DataBundle = Field(default_factory=DataBundle)
    max_sizes: SizeLimits = Field(default_factory=SizeLimits)
    proving_type: ProvingMode = ProvingMode.FULL
    program_location_override: Optional[ProgramLocation] = None
    eth_rpc_url_override: Optional[str] = None
    registry_address_override: Optional[str] = None


class CoprocessorInputBundle(BaseModel):
    data: DataBundle
    sizes: SizeLimits

    def encode(self) -> bytes:
        """
        Compact JSON (UTF-8) with absent lists omitted; this is the byte
        stream the zkVM program deserializes from stdin.
        """
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        return json.dumps(payload, separators=(",", ":")).encode("utf-8")


__all__ = [
    "WORD_SIZE",
    "Log",
    "Receipt",
    "StorageSlot",
    "Transaction",
    "DataBundle",
    "SizeLimits",
    "BundleProofRequest",
    "CoprocessorInputBundle",
]
