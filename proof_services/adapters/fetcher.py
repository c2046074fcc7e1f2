"""
Content-addressed program fetch + verify.

Retrieves a program binary into a fresh ``pico_elf_*`` workspace while
computing its SHA-256, then compares the digest with the hash the caller
committed to. Nothing leaves this module unverified: on mismatch (or any
other failure) the workspace is removed before the error propagates.

- Remote (http/https): the body is streamed chunk by chunk; each chunk updates
  the digest and is appended to the file, so memory is bounded by chunk size.
- Local path: the file is copied into the workspace, then the copy is hashed
  in fixed-size blocks. Blocking file I/O runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import hashlib
import shutil
from dataclasses import dataclass
from pathlib import Path

import httpx

from proof_services.context import ServiceContext
from proof_services.errors import (
    IoError,
    NetworkError,
    ProgramDownloadFailed,
    ProgramHashMismatch,
)
from proof_services.logging import get_logger
from proof_services.models.common import strip_0x
from proof_services.models.proof import ProgramLocation
from proof_services.storage.tempdirs import ELF_PREFIX, TempWorkspace, create_workspace

log = get_logger(__name__)

PROGRAM_FILENAME = "program.elf"
CHUNK = 1 << 16  # 64 KiB


@dataclass
class VerifiedProgram:
    """A binary whose SHA-256 matched the expected hash; owns its workspace."""

    workspace: TempWorkspace
    path: Path
    sha256: str


# ----------------------------- hashing ---------------------------------------


def sha256_file(path: Path, chunk_size: int = CHUNK) -> str:
    hasher = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def _copy_and_hash(src: Path, dest: Path) -> tuple[int, str]:
    shutil.copyfile(src, dest)
    return dest.stat().st_size, sha256_file(dest)


def hashes_match(expected: str, actual: str) -> bool:
    return strip_0x(expected.strip()).lower() == strip_0x(actual.strip()).lower()


# ----------------------------- transports ------------------------------------


async def download_and_hash(client: httpx.AsyncClient, url: str, dest: Path) -> str:
    """Stream ``url`` into ``dest``; return the hex SHA-256 of the body."""
    scheme = httpx.URL(url).scheme
    if scheme not in ("http", "https"):
        raise ProgramDownloadFailed(f"Unsupported URL scheme {scheme!r} for {url}")

    log.info("fetch.download", url=url, dest=str(dest))
    hasher = hashlib.sha256()
    total = 0
    try:
        async with client.stream("GET", url) as resp:
            if not resp.is_success:
                raise ProgramDownloadFailed(
                    f"Failed to download from {url}: Status {resp.status_code}",
                    details={"url": url, "status": resp.status_code},
                )
            with dest.open("wb") as f:
                async for chunk in resp.aiter_bytes(CHUNK):
                    hasher.update(chunk)
                    f.write(chunk)
                    total += len(chunk)
    except httpx.HTTPError as e:
        raise NetworkError(f"Download from {url} failed: {e}") from e
    except OSError as e:
        raise IoError(f"Failed writing {dest}: {e}") from e

    digest = hasher.hexdigest()
    log.debug("fetch.downloaded", url=url, bytes=total, sha256=digest)
    return digest


async def copy_and_hash(src: Path, dest: Path) -> str:
    if not src.exists():
        raise IoError(f"Local program path not found: {src}")
    try:
        size, digest = await asyncio.to_thread(_copy_and_hash, src, dest)
    except OSError as e:
        raise IoError(f"Failed to copy {src} to {dest}: {e}") from e
    log.debug("fetch.copied", src=str(src), dest=str(dest), bytes=size, sha256=digest)
    return digest


# ----------------------------- public API ------------------------------------


async def fetch_and_verify_program(
    ctx: ServiceContext,
    location: ProgramLocation,
    expected_hash_hex: str,
) -> VerifiedProgram:
    """
    Fetch the program at ``location`` and verify its SHA-256.

    Returns a VerifiedProgram owning a fresh workspace; the caller releases
    it. Raises ProgramHashMismatch (workspace already removed) when the
    digest differs from ``expected_hash_hex`` (case-insensitive, 0x optional).
    """
    workspace = create_workspace(ctx.temp_dir_base, ELF_PREFIX)
    elf_path = workspace.path / PROGRAM_FILENAME
    try:
        if location.is_remote:
            actual = await download_and_hash(ctx.http_client, location.remote_url, elf_path)
        else:
            actual = await copy_and_hash(Path(location.local_path), elf_path)

        if not hashes_match(expected_hash_hex, actual):
            log.error("fetch.hash_mismatch", expected=expected_hash_hex, actual=actual)
            raise ProgramHashMismatch(expected=expected_hash_hex, got=actual)
    except BaseException:
        workspace.cleanup()
        raise

    log.info("fetch.verified", expected=expected_hash_hex, actual=actual, path=str(elf_path))
    return VerifiedProgram(workspace=workspace, path=elf_path, sha256=actual)


__all__ = [
    "PROGRAM_FILENAME",
    "VerifiedProgram",
    "sha256_file",
    "hashes_match",
    "download_and_hash",
    "copy_and_hash",
    "fetch_and_verify_program",
]
