"""
Scoped temporary workspaces for proof jobs.

Every request owns two disjoint directories under the configured base:

    <TEMP_DIR_BASE>/pico_elf_<ns>_<rand>/program.elf        fetched binary
    <TEMP_DIR_BASE>/pico_output_<ns>_<rand>/proof_full_...   engine output

Names combine a nanosecond timestamp with 64 bits of randomness so that
concurrent jobs never share a directory, and directories are created with
``exist_ok=False`` so a collision fails loudly instead of merging.

A ``TempWorkspace`` is released when its ``with`` block exits, whatever the
exit path; ``cleanup()`` is idempotent, and a finalizer removes directories
whose handle was dropped without cleanup.

Public API:
  - unique_name(prefix) -> str
  - create_workspace(base, prefix) -> TempWorkspace
  - create_proof_output_dir(base, kind) -> Path
"""

from __future__ import annotations

import secrets
import shutil
import time
import weakref
from pathlib import Path
from typing import Optional

from proof_services.errors import TempDirError
from proof_services.logging import get_logger

log = get_logger(__name__)

ELF_PREFIX = "pico_elf_"
OUTPUT_PREFIX = "pico_output_"
COPROC_OUTPUT_PREFIX = "pico_coproc_out_"


def unique_name(prefix: str) -> str:
    return f"{prefix}{time.time_ns()}_{secrets.token_hex(8)}"


def _remove_tree(path: Path) -> None:
    shutil.rmtree(path, ignore_errors=True)


class TempWorkspace:
    """A uniquely named directory removed when its owning scope ends."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._finalizer = weakref.finalize(self, _remove_tree, path)

    @property
    def released(self) -> bool:
        return not self._finalizer.alive

    def cleanup(self) -> None:
        if self._finalizer.detach() is not None:
            _remove_tree(self.path)
            log.debug("workspace.released", path=str(self.path))

    def __enter__(self) -> "TempWorkspace":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"<TempWorkspace {self.path} ({state})>"


def create_workspace(base: Path, prefix: str) -> TempWorkspace:
    """
    Create a fresh directory ``<base>/<prefix><ns>_<rand>``.

    Raises TempDirError if the base is unusable or the name already exists.
    """
    path = Path(base) / unique_name(prefix)
    try:
        path.mkdir(parents=False, exist_ok=False)
    except OSError as e:
        raise TempDirError(f"Failed to create temp dir {path}: {e}") from e
    log.debug("workspace.created", path=str(path))
    return TempWorkspace(path)


def create_proof_output_dir(base: Path, kind: str, *, now_ms: Optional[int] = None) -> Path:
    """
    Create ``<base>/proof_<kind>_<ms>_<rand>`` for one engine run.

    The directory is not separately owned: it lives inside an output
    workspace and goes away with it.
    """
    ms = now_ms if now_ms is not None else time.time_ns() // 1_000_000
    path = Path(base) / f"proof_{kind}_{ms}_{secrets.token_hex(4)}"
    try:
        path.mkdir(parents=True, exist_ok=False)
    except OSError as e:
        raise TempDirError(f"Failed to create proof output dir {path}: {e}") from e
    return path


__all__ = [
    "ELF_PREFIX",
    "OUTPUT_PREFIX",
    "COPROC_OUTPUT_PREFIX",
    "TempWorkspace",
    "unique_name",
    "create_workspace",
    "create_proof_output_dir",
]
