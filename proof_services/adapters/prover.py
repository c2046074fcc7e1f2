"""
Proving Engine Adapter.

Runs a verified program through the engine in the requested mode and
normalizes whatever the engine hands back into a ``ProofResult``:

    Fast         prove_fast()         in memory, no artifacts on disk
    Full         prove()              proof_full_* under the output workspace
    FullWithEvm  prove_evm()          proof_evm_* with proof.data + inputs.json

Each mode is one strategy object in ``STRATEGIES``; the table is closed.
Engine failures become ``ProvingError("<Mode> proving failed: ...")``.
"""

from __future__ import annotations

import abc
import asyncio
import json
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from proof_services.adapters.engine import (
    EMBED_PROOF_FILE,
    EVM_INPUTS_FILE,
    EVM_PROOF_FILE,
    PROVING_KEY_FILE,
    PV_FILE,
    VERIFYING_KEY_FILE,
    EngineError,
    ProvingEngine,
)
from proof_services.errors import HexError, IoError, ProvingError
from proof_services.logging import get_logger
from proof_services.models.common import decode_hex
from proof_services.models.proof import ProofResult, ProvingMode
from proof_services.storage.tempdirs import create_proof_output_dir

log = get_logger(__name__)

SETUP_KEYS = (PROVING_KEY_FILE, VERIFYING_KEY_FILE)


@dataclass
class ProveOptions:
    output_base: Path
    setup_cache_dir: Optional[Path] = None
    field: str = "kb"


@dataclass
class RawProof:
    public_values: bytes
    proof: bytes
    output_dir: Optional[Path] = None


# ----------------------------- file helpers ----------------------------------


def _read_bytes(path: Path, what: str) -> bytes:
    if not path.is_file():
        raise ProvingError(f"{what} not found at {path}")
    try:
        return path.read_bytes()
    except OSError as e:
        raise IoError(f"Failed to read {what} {path}: {e}") from e


def _decode_public_values(text: str, source: str) -> bytes:
    try:
        return decode_hex(text)
    except ValueError as e:
        raise HexError(f"Public values in {source} are not valid hex: {e}") from e


def read_evm_public_values(output_dir: Path) -> bytes:
    """
    ``inputs.json`` field ``publicValues`` wins; ``pv_file`` (raw hex) is the
    fallback for engine builds that do not emit the EVM inputs file.
    """
    inputs_path = output_dir / EVM_INPUTS_FILE
    if inputs_path.is_file():
        try:
            doc = json.loads(_read_bytes(inputs_path, "EVM inputs file"))
        except ValueError as e:
            raise ProvingError(f"Malformed {EVM_INPUTS_FILE}: {e}") from e
        pv = doc.get("publicValues") if isinstance(doc, dict) else None
        if not isinstance(pv, str):
            raise ProvingError(f"{EVM_INPUTS_FILE} has no publicValues field")
        return _decode_public_values(pv, EVM_INPUTS_FILE)

    pv_path = output_dir / PV_FILE
    if pv_path.is_file():
        text = _read_bytes(pv_path, "public values file").decode("utf-8", errors="replace")
        return _decode_public_values(text, PV_FILE)

    raise ProvingError(f"No public values found in {output_dir} (expected {EVM_INPUTS_FILE} or {PV_FILE})")


def _has_keys(directory: Path) -> bool:
    return all((directory / name).is_file() for name in SETUP_KEYS)


def _install_file(src: Path, dest: Path) -> None:
    # temp file in the destination dir, then atomic rename into place
    with tempfile.NamedTemporaryFile("wb", delete=False, dir=dest.parent, prefix=f".{dest.name}.") as tf:
        tmp = Path(tf.name)
    try:
        shutil.copyfile(src, tmp)
        os.replace(tmp, dest)
    finally:
        tmp.unlink(missing_ok=True)


def _copy_keys(src: Path, dest: Path) -> None:
    """
    Copy the setup keys from ``src`` to ``dest``.

    A key shows up in ``dest`` only once fully written; ``vm_vk`` goes last.
    """
    dest.mkdir(parents=True, exist_ok=True)
    for name in SETUP_KEYS:
        _install_file(src / name, dest / name)


# ----------------------------- strategies ------------------------------------


class ModeStrategy(abc.ABC):
    mode: ProvingMode
    label: str

    @abc.abstractmethod
    async def run(self, engine: ProvingEngine, elf_path: Path, stdin: bytes, opts: ProveOptions) -> RawProof: ...


class FastStrategy(ModeStrategy):
    mode = ProvingMode.FAST
    label = "Fast"

    async def run(self, engine, elf_path, stdin, opts):
        out = await engine.prove_fast(elf_path, stdin)
        if out.pv_stream is None:
            raise ProvingError("Fast proof missing public values stream")
        if not out.proofs:
            raise ProvingError("Fast proving produced no proof objects")
        return RawProof(public_values=out.pv_stream, proof=out.proofs[0])


class FullStrategy(ModeStrategy):
    mode = ProvingMode.FULL
    label = "Full"

    async def run(self, engine, elf_path, stdin, opts):
        output_dir = create_proof_output_dir(opts.output_base, "full")
        out = await engine.prove(elf_path, stdin, output_dir)
        if out.pv_stream is None:
            raise ProvingError("Full proof missing public values stream from the base phase")
        if out.proof is None:
            raise ProvingError(f"Full proving produced no embed proof ({EMBED_PROOF_FILE})")
        return RawProof(public_values=out.pv_stream, proof=out.proof, output_dir=output_dir)


class EvmStrategy(ModeStrategy):
    mode = ProvingMode.FULL_WITH_EVM
    label = "FullWithEvm"

    async def run(self, engine, elf_path, stdin, opts):
        output_dir = create_proof_output_dir(opts.output_base, "evm")
        cache = opts.setup_cache_dir

        if cache is not None and _has_keys(cache):
            try:
                await asyncio.to_thread(_copy_keys, cache, output_dir)
            except OSError as e:
                raise IoError(f"Failed to seed setup keys from {cache}: {e}") from e
            log.debug("prove.setup_keys_seeded", cache=str(cache))

        need_setup = not _has_keys(output_dir)
        log.info("prove.evm", need_setup=need_setup, field=opts.field, output_dir=str(output_dir))
        await engine.prove_evm(
            elf_path,
            stdin,
            need_setup=need_setup,
            output_dir=output_dir,
            field=opts.field,
        )

        proof = _read_bytes(output_dir / EVM_PROOF_FILE, "EVM proof file")
        public_values = read_evm_public_values(output_dir)

        if need_setup and cache is not None and _has_keys(output_dir):
            try:
                await asyncio.to_thread(_copy_keys, output_dir, cache)
                log.info("prove.setup_keys_cached", cache=str(cache))
            except OSError as e:
                log.warning("prove.setup_keys_cache_failed", cache=str(cache), error=str(e))

        return RawProof(public_values=public_values, proof=proof, output_dir=output_dir)


STRATEGIES: Dict[ProvingMode, ModeStrategy] = {
    s.mode: s for s in (FastStrategy(), FullStrategy(), EvmStrategy())
}


# ----------------------------- public API ------------------------------------


async def execute_prove(
    engine: ProvingEngine,
    elf_path: Path,
    inputs_hex: str,
    mode: ProvingMode,
    output_base: Path,
    *,
    setup_cache_dir: Optional[Path] = None,
    field: str = "kb",
) -> ProofResult:
    """
    Prove ``elf_path`` on ``inputs_hex`` in ``mode``.

    Artifacts (Full / FullWithEvm) land in a fresh ``proof_<kind>_*``
    directory under ``output_base``; the caller owns ``output_base``.
    ``program_hash`` on the returned result is left empty.
    """
    if not elf_path.is_file():
        raise IoError(f"Program binary not readable: {elf_path}")
    try:
        stdin = decode_hex(inputs_hex)
    except ValueError as e:
        raise HexError(f"Invalid engine input hex: {e}") from e

    strategy = STRATEGIES[ProvingMode(mode)]
    log.info("prove.start", mode=strategy.label, input_bytes=len(stdin))
    try:
        raw = await strategy.run(
            engine,
            elf_path,
            stdin,
            ProveOptions(output_base=output_base, setup_cache_dir=setup_cache_dir, field=field),
        )
    except EngineError as e:
        raise ProvingError(f"{strategy.label} proving failed: {e}") from e

    log.info(
        "prove.done",
        mode=strategy.label,
        public_values_bytes=len(raw.public_values),
        proof_bytes=len(raw.proof),
    )
    return ProofResult(
        public_values=raw.public_values.hex(),
        proof=raw.proof.hex(),
        proving_type=strategy.mode,
        output_dir=str(raw.output_dir) if raw.output_dir is not None else None,
        program_hash="",
        inputs=inputs_hex,
    )


__all__ = [
    "ModeStrategy",
    "FastStrategy",
    "FullStrategy",
    "EvmStrategy",
    "STRATEGIES",
    "RawProof",
    "read_evm_public_values",
    "execute_prove",
]
