from __future__ import annotations

"""
Common model types: Bytes32, Address, HexData, Quantity and hex helpers.

- Bytes32:  0x + 64 hex chars (32 bytes), normalized to lowercase.
- Address:  0x + 40 hex chars (20 bytes), serialized EIP-55 checksummed.
- HexData:  hex string with optional 0x, even length; kept as given.
- Quantity: unsigned integer; accepts int or 0x-hex, serialized as 0x-hex.

These follow Ethereum JSON conventions so serialized data bundles look like
what a node would hand back from eth_getTransactionReceipt and friends.
"""

import re
from typing import Annotated, Optional, Union

from eth_utils import is_hex_address, to_checksum_address
from pydantic import AfterValidator, BeforeValidator, PlainSerializer

_HEX_BODY_RE = re.compile(r"^[0-9a-fA-F]*$")


# ----------------------------- HEX HELPERS -----------------------------


def strip_0x(v: str) -> str:
    """Return hex string without 0x prefix (no validation)."""
    return v[2:] if v[:2] in ("0x", "0X") else v


def decode_hex(v: str) -> bytes:
    """
    Decode a hex string (optional 0x prefix) into bytes.

    Raises ValueError on odd length or non-hex characters.
    """
    body = strip_0x(v.strip())
    if len(body) % 2 != 0:
        raise ValueError(f"odd-length hex string ({len(body)} nibbles)")
    if not _HEX_BODY_RE.match(body):
        raise ValueError("hex string contains non-hex characters")
    return bytes.fromhex(body)


def parse_bytes32(v: str) -> bytes:
    """Decode a 32-byte hex value (optional 0x). Raises ValueError otherwise."""
    raw = decode_hex(v)
    if len(raw) != 32:
        raise ValueError(f"expected 32 bytes, got {len(raw)}")
    return raw


def is_address(v: str) -> bool:
    if not isinstance(v, str):
        return False
    v = v.strip()
    return v[:2] in ("0x", "0X") and is_hex_address(v)


# ----------------------------- VALIDATORS ------------------------------


def _validate_bytes32(v: str) -> str:
    if not isinstance(v, str):
        raise TypeError("value must be a hex string")
    return "0x" + parse_bytes32(v).hex()


def _validate_address(v: str) -> str:
    if not isinstance(v, str) or not is_address(v):
        raise ValueError("address must be 0x + 40 hex chars")
    return "0x" + strip_0x(v.strip()).lower()


def _validate_hex_data(v: str) -> str:
    if not isinstance(v, str):
        raise TypeError("value must be a hex string")
    decode_hex(v)
    return v.strip()


def _coerce_quantity(v: Union[int, str]) -> int:
    if isinstance(v, bool):
        raise TypeError("quantity must be an integer")
    if isinstance(v, int):
        n = v
    elif isinstance(v, str):
        s = v.strip()
        n = int(s, 16) if s[:2] in ("0x", "0X") else int(s, 10)
    else:
        raise TypeError("quantity must be an integer or 0x-hex string")
    if n < 0 or n >= 1 << 256:
        raise ValueError("quantity out of uint256 range")
    return n


def _quantity_hex(n: int) -> str:
    return hex(n)


# --------------------------- PUBLIC TYPE ALIASES -----------------------

Bytes32 = Annotated[str, AfterValidator(_validate_bytes32)]
Address = Annotated[
    str, AfterValidator(_validate_address), PlainSerializer(to_checksum_address, return_type=str)
]
HexData = Annotated[str, AfterValidator(_validate_hex_data)]
Quantity = Annotated[
    int, BeforeValidator(_coerce_quantity), PlainSerializer(_quantity_hex, return_type=str)
]
OptionalQuantity = Optional[Quantity]


__all__ = [
    "Bytes32",
    "Address",
    "HexData",
    "Quantity",
    "OptionalQuantity",
    "strip_0x",
    "decode_hex",
    "parse_bytes32",
    "to_checksum_address",
    "is_address",
]
