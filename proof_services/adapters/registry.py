"""
ProgramRegistry lookup over Ethereum JSON-RPC.

The registry contract maps a 32-byte program hash to a location string:

    function getProgramLocation(bytes32 programHash) external view returns (string)

We issue a single ``eth_call`` against the configured (or per-request
overridden) endpoint. Call data and the ``string`` return are built and
parsed with ``eth_abi``.

Failure mapping
---------------
* transport failure / non-2xx HTTP / non-JSON body  -> BlockchainError
* JSON-RPC error object (revert, bad params)        -> ContractCallError
* empty return data (no contract at address)        -> ContractCallError
* malformed ABI return                              -> SerdeError
* empty location string                             -> ProgramNotFoundInRegistry
* location is not an absolute URL                   -> InvalidUrl

No retries happen here; callers may retry the whole job.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector
from pydantic import AnyUrl, TypeAdapter, ValidationError

from proof_services.context import ServiceContext
from proof_services.errors import (
    BlockchainError,
    ContractCallError,
    InvalidUrl,
    ProgramNotFoundInRegistry,
    SerdeError,
)
from proof_services.logging import get_logger
from proof_services.models.common import decode_hex
from proof_services.models.proof import ProgramLocation

log = get_logger(__name__)

GET_PROGRAM_LOCATION_SIG = "getProgramLocation(bytes32)"
GET_PROGRAM_LOCATION_SELECTOR = function_signature_to_4byte_selector(GET_PROGRAM_LOCATION_SIG)

_URL_ADAPTER = TypeAdapter(AnyUrl)


# ----------------------------- ABI helpers ----------------------------------


def encode_get_program_location(program_hash: bytes) -> str:
    if len(program_hash) != 32:
        raise ValueError("program hash must be 32 bytes")
    return "0x" + (GET_PROGRAM_LOCATION_SELECTOR + abi_encode(["bytes32"], [program_hash])).hex()


def decode_abi_string(data: bytes) -> str:
    """Decode a single ABI ``string`` return value. Raises ValueError."""
    try:
        (value,) = abi_decode(["string"], data)
    except (DecodingError, OverflowError) as e:
        raise ValueError(str(e)) from e
    return value


def parse_location_url(location: str) -> ProgramLocation:
    try:
        _URL_ADAPTER.validate_python(location)
    except ValidationError as e:
        raise InvalidUrl(f"{location!r}: {e.errors()[0]['msg']}") from e
    return ProgramLocation.remote(location)


# ----------------------------- JSON-RPC -------------------------------------


async def _eth_call(client: httpx.AsyncClient, rpc_url: str, to: str, data: str) -> str:
    payload: Dict[str, Any] = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "eth_call",
        "params": [{"to": to, "data": data}, "latest"],
    }
    try:
        resp = await client.post(rpc_url, json=payload, headers={"accept": "application/json"})
    except httpx.HTTPError as e:
        raise BlockchainError(f"eth_call to {rpc_url} failed: {e}") from e

    if not resp.is_success:
        raise BlockchainError(f"eth_call to {rpc_url} returned HTTP {resp.status_code}: {resp.text[:256]!r}")
    try:
        body = resp.json()
    except ValueError as e:
        raise BlockchainError(f"eth_call to {rpc_url} returned a non-JSON body") from e

    err = body.get("error") if isinstance(body, dict) else None
    if err:
        raise ContractCallError(
            f"RPC error {err.get('code', -32000)}: {err.get('message', 'unknown error')}",
            details={"data": err.get("data")} if err.get("data") is not None else None,
        )
    result = body.get("result") if isinstance(body, dict) else None
    if not isinstance(result, str):
        raise BlockchainError(f"eth_call to {rpc_url} returned no result")
    return result


async def get_program_location_from_registry(
    ctx: ServiceContext,
    program_hash: bytes,
    *,
    rpc_url: Optional[str] = None,
    registry_address: Optional[str] = None,
) -> ProgramLocation:
    """Query ProgramRegistry.getProgramLocation(program_hash)."""
    rpc_url = rpc_url or ctx.eth_rpc_url
    registry_address = registry_address or ctx.registry_contract_address
    hash_hex = "0x" + program_hash.hex()
    log.debug("registry.query", registry=registry_address, program_hash=hash_hex, rpc_url=rpc_url)

    result = await _eth_call(
        ctx.http_client, rpc_url, registry_address, encode_get_program_location(program_hash)
    )
    try:
        raw = decode_hex(result)
    except ValueError as e:
        raise SerdeError(f"eth_call result is not hex: {e}") from e
    if not raw:
        raise ContractCallError(f"empty return data from registry at {registry_address}")
    try:
        location = decode_abi_string(raw)
    except (ValueError, UnicodeDecodeError) as e:
        raise SerdeError(f"Malformed getProgramLocation return data: {e}") from e

    if not location:
        raise ProgramNotFoundInRegistry(hash_hex)
    log.info("registry.found", program_hash=hash_hex, location=location)
    return parse_location_url(location)


async def resolve_program_location(
    ctx: ServiceContext,
    program_hash: bytes,
    override: Optional[ProgramLocation],
    *,
    rpc_url: Optional[str] = None,
    registry_address: Optional[str] = None,
) -> ProgramLocation:
    """
    Override wins verbatim; otherwise ask the registry.
    """
    if override is not None:
        log.info("registry.override", location=str(override))
        return override
    return await get_program_location_from_registry(
        ctx, program_hash, rpc_url=rpc_url, registry_address=registry_address
    )


__all__ = [
    "GET_PROGRAM_LOCATION_SELECTOR",
    "encode_get_program_location",
    "decode_abi_string",
    "parse_location_url",
    "get_program_location_from_registry",
    "resolve_program_location",
]
