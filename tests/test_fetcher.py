from __future__ import annotations

import hashlib
from pathlib import Path

import httpx
import pytest
import respx

from proof_services.adapters.fetcher import (
    PROGRAM_FILENAME,
    fetch_and_verify_program,
    hashes_match,
)
from proof_services.errors import IoError, NetworkError, ProgramDownloadFailed, ProgramHashMismatch
from proof_services.models.proof import ProgramLocation

from .conftest import PROGRAM_BYTES, leftovers

PROGRAM_URL = "https://programs.example.org/guest.elf"


def test_hashes_match_ignores_case_and_prefix():
    digest = "ab" * 32
    assert hashes_match("0x" + digest.upper(), digest)
    assert hashes_match(digest, "0X" + digest)
    assert not hashes_match(digest, "cd" * 32)


# ------------------------------ local path -----------------------------------


@pytest.mark.asyncio
async def test_local_program_is_copied_and_verified(ctx, program_file: Path, program_hash: str):
    program = await fetch_and_verify_program(ctx, ProgramLocation.local(program_file), program_hash)
    try:
        assert program.path.name == PROGRAM_FILENAME
        assert program.path.parent.name.startswith("pico_elf_")
        assert program.path.read_bytes() == PROGRAM_BYTES
        assert program.sha256 == program_hash
        # the source is untouched
        assert program_file.read_bytes() == PROGRAM_BYTES
    finally:
        program.workspace.cleanup()
    assert leftovers(ctx.temp_dir_base) == []


@pytest.mark.asyncio
async def test_local_hash_mismatch_removes_workspace(ctx, program_file: Path):
    wrong = "00" * 32
    with pytest.raises(ProgramHashMismatch) as ei:
        await fetch_and_verify_program(ctx, ProgramLocation.local(program_file), wrong)
    assert ei.value.expected == wrong
    assert ei.value.got == hashlib.sha256(PROGRAM_BYTES).hexdigest()
    assert leftovers(ctx.temp_dir_base) == []


@pytest.mark.asyncio
async def test_missing_local_path_is_io_error(ctx, tmp_path: Path, program_hash: str):
    with pytest.raises(IoError, match="Local program path not found"):
        await fetch_and_verify_program(ctx, ProgramLocation.local(tmp_path / "nope.elf"), program_hash)
    assert leftovers(ctx.temp_dir_base) == []


# ------------------------------ remote URL -----------------------------------


@pytest.mark.asyncio
@respx.mock
async def test_remote_program_is_streamed_and_verified(ctx, program_hash: str):
    respx.get(PROGRAM_URL).mock(return_value=httpx.Response(200, content=PROGRAM_BYTES))

    program = await fetch_and_verify_program(ctx, ProgramLocation.remote(PROGRAM_URL), "0x" + program_hash.upper())
    with program.workspace:
        assert program.path.read_bytes() == PROGRAM_BYTES
        assert program.sha256 == program_hash
    assert leftovers(ctx.temp_dir_base) == []


@pytest.mark.asyncio
@respx.mock
async def test_remote_status_error_is_download_failed(ctx, program_hash: str):
    respx.get(PROGRAM_URL).mock(return_value=httpx.Response(404))
    with pytest.raises(ProgramDownloadFailed) as ei:
        await fetch_and_verify_program(ctx, ProgramLocation.remote(PROGRAM_URL), program_hash)
    assert f"Failed to download from {PROGRAM_URL}: Status 404" in str(ei.value)
    assert leftovers(ctx.temp_dir_base) == []


@pytest.mark.asyncio
@respx.mock
async def test_remote_tampered_body_is_rejected(ctx, program_hash: str):
    respx.get(PROGRAM_URL).mock(return_value=httpx.Response(200, content=PROGRAM_BYTES + b"\x00"))
    with pytest.raises(ProgramHashMismatch):
        await fetch_and_verify_program(ctx, ProgramLocation.remote(PROGRAM_URL), program_hash)
    assert leftovers(ctx.temp_dir_base) == []


@pytest.mark.asyncio
@respx.mock
async def test_remote_transport_error_is_network_error(ctx, program_hash: str):
    respx.get(PROGRAM_URL).mock(side_effect=httpx.ConnectTimeout("timed out"))
    with pytest.raises(NetworkError):
        await fetch_and_verify_program(ctx, ProgramLocation.remote(PROGRAM_URL), program_hash)
    assert leftovers(ctx.temp_dir_base) == []


@pytest.mark.asyncio
async def test_unsupported_scheme_is_download_failed(ctx, program_hash: str):
    with pytest.raises(ProgramDownloadFailed, match="Unsupported URL scheme"):
        await fetch_and_verify_program(ctx, ProgramLocation.remote("ftp://mirror.example/guest.elf"), program_hash)
    assert leftovers(ctx.temp_dir_base) == []
