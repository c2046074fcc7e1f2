"""
Proving engine boundary.

The engine is an external collaborator: it accepts a program binary and an
input byte stream and offers one entry point per proving mode.

- prove_fast(elf, stdin)                 -> FastProof (in memory)
- prove(elf, stdin, output_dir)          -> FullProof (base + embed phases)
- prove_evm(elf, stdin, need_setup, ...) -> None; writes verifier artifacts

`PicoCliEngine` drives the ``cargo pico`` CLI as a child process. Output files
written by the CLI (relative to ``--output``):

    pv_file           hex public values of the base (RISC-V) phase
    prover.input.bin  raw engine input, passed to the CLI as --input <path>
    riscv_proof.bin   fast-mode proof object
    embed_proof.bin   recursive/embed proof (Full mode)
    proof.data        EVM proof (FullWithEvm mode)
    inputs.json       EVM call inputs, {"publicValues": "0x...", ...}
    vm_pk / vm_vk     EVM proving / verifying keys (setup)
"""

from __future__ import annotations

import abc
import asyncio
import shlex
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from proof_services.logging import get_logger

log = get_logger(__name__)

PV_FILE = "pv_file"
RISCV_PROOF_FILE = "riscv_proof.bin"
EMBED_PROOF_FILE = "embed_proof.bin"
EVM_PROOF_FILE = "proof.data"
EVM_INPUTS_FILE = "inputs.json"
PROVING_KEY_FILE = "vm_pk"
VERIFYING_KEY_FILE = "vm_vk"

STDERR_TAIL = 2048


class EngineError(Exception):
    """The proving engine rejected the input or failed to run."""


@dataclass
class FastProof:
    pv_stream: Optional[bytes]
    proofs: List[bytes] = field(default_factory=list)


@dataclass
class FullProof:
    pv_stream: Optional[bytes]  # from the base phase
    proof: Optional[bytes]  # serialized embed-phase proof


class ProvingEngine(abc.ABC):
    @abc.abstractmethod
    async def prove_fast(self, elf_path: Path, stdin: bytes) -> FastProof: ...

    @abc.abstractmethod
    async def prove(self, elf_path: Path, stdin: bytes, output_dir: Path) -> FullProof: ...

    @abc.abstractmethod
    async def prove_evm(
        self,
        elf_path: Path,
        stdin: bytes,
        *,
        need_setup: bool,
        output_dir: Path,
        field: str = "kb",
    ) -> None: ...


# ----------------------------- CLI engine ------------------------------------

INPUT_FILE = "prover.input.bin"
STDOUT_LOG = "prover.stdout.log"
STDERR_LOG = "prover.stderr.log"


def _read_optional(path: Path) -> Optional[bytes]:
    if not path.is_file():
        return None
    try:
        return path.read_bytes()
    except OSError as e:
        raise EngineError(f"failed to read {path.name}: {e}") from e


def _read_pv_file(path: Path) -> Optional[bytes]:
    raw = _read_optional(path)
    if raw is None:
        return None
    try:
        text = raw.decode("ascii").strip()
        if text[:2] in ("0x", "0X"):
            text = text[2:]
        return bytes.fromhex(text)
    except ValueError as e:
        raise EngineError(f"{path.name} is not hex: {e}") from e


def _write(path: Path, data: bytes) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as e:
        raise EngineError(f"failed to write {path.name}: {e}") from e


class PicoCliEngine(ProvingEngine):
    """
    Runs ``<cmd> prove --elf <path> --input <file> --output <dir> [flags]``.

    The input bytes are written to ``prover.input.bin`` in the run directory
    so the argument list stays small whatever the payload size. stdout/stderr
    of each run are kept next to the artifacts as ``prover.stdout.log`` /
    ``prover.stderr.log``.
    """

    def __init__(
        self,
        cmd: str | Sequence[str] = "cargo pico",
        *,
        env: Optional[Mapping[str, str]] = None,
        scratch_base: Optional[Path] = None,
    ) -> None:
        self.argv = shlex.split(cmd) if isinstance(cmd, str) else list(cmd)
        if not self.argv:
            raise ValueError("prover command must not be empty")
        self.env = dict(env) if env is not None else None
        self.scratch_base = scratch_base

    def _command(self, elf_path: Path, input_path: Path, output_dir: Path, flags: Sequence[str]) -> List[str]:
        return [
            *self.argv,
            "prove",
            "--elf",
            str(elf_path),
            "--input",
            str(input_path),
            "--output",
            str(output_dir),
            *flags,
        ]

    async def _run(self, elf_path: Path, stdin: bytes, output_dir: Path, flags: Sequence[str]) -> None:
        input_path = output_dir / INPUT_FILE
        _write(input_path, stdin)
        cmd = self._command(elf_path, input_path, output_dir, flags)
        log.info("engine.run", cmd=cmd[0], flags=list(flags), input_bytes=len(stdin), output_dir=str(output_dir))
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.env,
            )
        except OSError as e:
            raise EngineError(f"failed to start {cmd[0]!r}: {e}") from e
        stdout, stderr = await proc.communicate()

        _write(output_dir / STDOUT_LOG, stdout)
        _write(output_dir / STDERR_LOG, stderr)

        if proc.returncode != 0:
            tail = stderr[-STDERR_TAIL:].decode("utf-8", errors="replace").strip()
            raise EngineError(f"{cmd[0]} exited with status {proc.returncode}: {tail}")

    async def prove_fast(self, elf_path: Path, stdin: bytes) -> FastProof:
        with tempfile.TemporaryDirectory(prefix="pico_fast_", dir=self.scratch_base) as scratch:
            out = Path(scratch)
            await self._run(elf_path, stdin, out, ["--fast"])
            proof = _read_optional(out / RISCV_PROOF_FILE)
            return FastProof(
                pv_stream=_read_pv_file(out / PV_FILE),
                proofs=[proof] if proof is not None else [],
            )

    async def prove(self, elf_path: Path, stdin: bytes, output_dir: Path) -> FullProof:
        await self._run(elf_path, stdin, output_dir, [])
        return FullProof(
            pv_stream=_read_pv_file(output_dir / PV_FILE),
            proof=_read_optional(output_dir / EMBED_PROOF_FILE),
        )

    async def prove_evm(
        self,
        elf_path: Path,
        stdin: bytes,
        *,
        need_setup: bool,
        output_dir: Path,
        field: str = "kb",
    ) -> None:
        flags = ["--evm", "--field", field]
        if need_setup:
            flags.append("--setup")
        await self._run(elf_path, stdin, output_dir, flags)


__all__ = [
    "PV_FILE",
    "RISCV_PROOF_FILE",
    "EMBED_PROOF_FILE",
    "EVM_PROOF_FILE",
    "EVM_INPUTS_FILE",
    "PROVING_KEY_FILE",
    "VERIFYING_KEY_FILE",
    "INPUT_FILE",
    "EngineError",
    "FastProof",
    "FullProof",
    "ProvingEngine",
    "PicoCliEngine",
]
