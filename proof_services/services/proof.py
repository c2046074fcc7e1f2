"""
Proof job orchestrators.

    generate_proof(ctx, ProofRequest)                   -> ProofResult
    generate_coprocessor_proof(ctx, BundleProofRequest) -> ProofResult

Pipeline per request (stages run strictly in order):

  1. validate program hash, inputs / size limits, endpoint overrides
  2. allocate the output workspace (pico_output_* / pico_coproc_out_*)
  3. resolve the program location (override or registry)
  4. fetch + verify the binary into its own pico_elf_* workspace
  5. run the prover in the requested mode
  6. stamp program_hash / inputs on the result

Both workspaces are entered on one ExitStack, so they are gone when the call
returns or raises. Errors propagate unchanged; each failure is logged once
with its error code.
"""

from __future__ import annotations

from contextlib import ExitStack
from typing import Optional

import httpx

from proof_services.adapters.fetcher import fetch_and_verify_program
from proof_services.adapters.prover import execute_prove
from proof_services.adapters.registry import resolve_program_location
from proof_services.context import ServiceContext
from proof_services.errors import InvalidInput, ProofServiceError
from proof_services.logging import bind_job_context, clear_job_context, get_logger
from proof_services.models.common import decode_hex, is_address, parse_bytes32
from proof_services.models.coprocessor import BundleProofRequest, CoprocessorInputBundle
from proof_services.models.proof import ProgramLocation, ProofRequest, ProofResult, ProvingMode
from proof_services.storage.tempdirs import COPROC_OUTPUT_PREFIX, OUTPUT_PREFIX, create_workspace

log = get_logger(__name__)


# ----------------------------- validation ------------------------------------


def _parse_program_hash(program_hash: str) -> bytes:
    try:
        return parse_bytes32(program_hash)
    except (ValueError, AttributeError):
        raise InvalidInput(f"Invalid program_hash format (expected 32-byte hex): {program_hash}") from None


def _check_overrides(rpc_url: Optional[str], registry_address: Optional[str]) -> None:
    if registry_address is not None and not is_address(registry_address):
        raise InvalidInput(f"Invalid registry_address_override (expected 20-byte 0x hex): {registry_address}")
    if rpc_url is not None:
        try:
            url = httpx.URL(rpc_url)
        except httpx.InvalidURL:
            url = None
        if url is None or url.scheme not in ("http", "https") or not url.host:
            raise InvalidInput(f"Invalid eth_rpc_url_override: {rpc_url}")


# ----------------------------- pipeline --------------------------------------


async def _run_pipeline(
    ctx: ServiceContext,
    *,
    program_hash: str,
    hash_bytes: bytes,
    inputs_hex: str,
    mode: ProvingMode,
    override: Optional[ProgramLocation],
    rpc_url: Optional[str],
    registry_address: Optional[str],
    output_prefix: str,
) -> ProofResult:
    with ExitStack() as stack:
        output = stack.enter_context(create_workspace(ctx.temp_dir_base, output_prefix))

        location = await resolve_program_location(
            ctx, hash_bytes, override, rpc_url=rpc_url, registry_address=registry_address
        )
        program = await fetch_and_verify_program(ctx, location, program_hash)
        stack.enter_context(program.workspace)

        result = await execute_prove(
            ctx.engine,
            program.path,
            inputs_hex,
            mode,
            output.path,
            setup_cache_dir=ctx.setup_cache_dir,
            field=ctx.prover_field,
        )

    return result.model_copy(update={"program_hash": program_hash, "inputs": inputs_hex})


async def _run_job(job: str, program_hash: str, mode: ProvingMode, body) -> ProofResult:
    bind_job_context(job=job, program_hash=program_hash)
    log.info("job.start", mode=mode.value)
    try:
        result = await body()
    except ProofServiceError as e:
        log.error("job.failed", code=e.code, error=str(e))
        raise
    except Exception:
        log.exception("job.crashed")
        raise
    else:
        log.info("job.done", mode=result.proving_type.value, output_dir=result.output_dir)
        return result
    finally:
        clear_job_context("job", "program_hash")


# ----------------------------- public API ------------------------------------


async def generate_proof(ctx: ServiceContext, request: ProofRequest) -> ProofResult:
    """Prove ``request.inputs`` with the program committed to by ``request.program_hash``."""

    async def body() -> ProofResult:
        hash_bytes = _parse_program_hash(request.program_hash)
        try:
            decode_hex(request.inputs)
        except ValueError:
            raise InvalidInput(f"Invalid inputs format (expected hex): {request.inputs}") from None
        _check_overrides(request.eth_rpc_url_override, request.registry_address_override)

        return await _run_pipeline(
            ctx,
            program_hash=request.program_hash,
            hash_bytes=hash_bytes,
            inputs_hex=request.inputs,
            mode=request.proving_type,
            override=request.program_location_override,
            rpc_url=request.eth_rpc_url_override,
            registry_address=request.registry_address_override,
            output_prefix=OUTPUT_PREFIX,
        )

    return await _run_job("generate_proof", request.program_hash, request.proving_type, body)


async def generate_coprocessor_proof(ctx: ServiceContext, request: BundleProofRequest) -> ProofResult:
    """
    Prove over a blockchain data bundle.

    The bundle and its size limits are serialized to compact JSON and
    hex-encoded; that hex is both the engine input and ``result.inputs``.
    """

    async def body() -> ProofResult:
        hash_bytes = _parse_program_hash(request.program_hash)
        sizes = request.max_sizes
        if sizes.invalid_fields():
            raise InvalidInput(
                "Invalid max_sizes: must be > 0 and multiple of 32. "
                f"Got receipt={sizes.max_receipt_size}, storage={sizes.max_storage_size}, "
                f"tx={sizes.max_tx_size}",
                details={"fields": sizes.invalid_fields()},
            )
        _check_overrides(request.eth_rpc_url_override, request.registry_address_override)

        bundle = CoprocessorInputBundle(data=request.blockchain_data, sizes=sizes)
        inputs_hex = bundle.encode().hex()
        log.debug("job.bundle_encoded", input_bytes=len(inputs_hex) // 2)

        return await _run_pipeline(
            ctx,
            program_hash=request.program_hash,
            hash_bytes=hash_bytes,
            inputs_hex=inputs_hex,
            mode=request.proving_type,
            override=request.program_location_override,
            rpc_url=request.eth_rpc_url_override,
            registry_address=request.registry_address_override,
            output_prefix=COPROC_OUTPUT_PREFIX,
        )

    return await _run_job("generate_coprocessor_proof", request.program_hash, request.proving_type, body)


__all__ = ["generate_proof", "generate_coprocessor_proof"]
