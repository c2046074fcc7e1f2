from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import AsyncIterator, List, Optional

import pytest
import pytest_asyncio

from proof_services.adapters.engine import (
    EVM_INPUTS_FILE,
    EVM_PROOF_FILE,
    PROVING_KEY_FILE,
    PV_FILE,
    VERIFYING_KEY_FILE,
    EngineError,
    FastProof,
    FullProof,
    ProvingEngine,
)
from proof_services.context import ServiceContext

RPC_URL = "http://rpc.test:8545"
REGISTRY = "0x5fbdb2315678afecb367f032d93f642f64180aa3"

PROGRAM_BYTES = b"\x7fELF\x01\x01\x01" + b"guest-program" * 64


# ----------------------------
# Deterministic proving engine
# ----------------------------
class FakeEngine(ProvingEngine):
    """
    Records every call and returns canned output.

    ``evm_layout`` controls which public-values file prove_evm() writes:
    "inputs" (inputs.json), "pv" (pv_file only) or "none".
    """

    def __init__(
        self,
        *,
        public_values: Optional[bytes] = b"\x00\x01\x02\x03",
        proof: bytes = b"proof-bytes",
        fail: Optional[str] = None,
        evm_layout: str = "inputs",
        write_evm_proof: bool = True,
    ) -> None:
        self.public_values = public_values
        self.proof = proof
        self.fail = fail
        self.evm_layout = evm_layout
        self.write_evm_proof = write_evm_proof
        self.calls: List[dict] = []

    def _record(self, mode: str, elf_path: Path, stdin: bytes, **extra) -> None:
        self.calls.append(
            {
                "mode": mode,
                "elf_sha256": hashlib.sha256(elf_path.read_bytes()).hexdigest(),
                "elf_path": elf_path,
                "stdin": stdin,
                **extra,
            }
        )
        if self.fail is not None:
            raise EngineError(self.fail)

    async def prove_fast(self, elf_path, stdin):
        self._record("fast", elf_path, stdin)
        return FastProof(pv_stream=self.public_values, proofs=[self.proof])

    async def prove(self, elf_path, stdin, output_dir):
        self._record("full", elf_path, stdin, output_dir=output_dir)
        (output_dir / "embed_proof.bin").write_bytes(self.proof)
        return FullProof(pv_stream=self.public_values, proof=self.proof)

    async def prove_evm(self, elf_path, stdin, *, need_setup, output_dir, field="kb"):
        self._record("evm", elf_path, stdin, output_dir=output_dir, need_setup=need_setup, field=field)
        if need_setup:
            (output_dir / PROVING_KEY_FILE).write_bytes(b"pk")
            (output_dir / VERIFYING_KEY_FILE).write_bytes(b"vk")
        if self.write_evm_proof:
            (output_dir / EVM_PROOF_FILE).write_bytes(self.proof)
        pv = self.public_values or b""
        if self.evm_layout == "inputs":
            (output_dir / EVM_INPUTS_FILE).write_text(
                json.dumps({"riscvVKey": "0x00", "publicValues": "0x" + pv.hex(), "proof": []})
            )
        elif self.evm_layout == "pv":
            (output_dir / PV_FILE).write_text(pv.hex())


def leftovers(base: Path) -> List[str]:
    return sorted(p.name for p in base.iterdir())


# ----------------------------
# Program binary
# ----------------------------
@pytest.fixture()
def program_file(tmp_path: Path) -> Path:
    path = tmp_path / "guest.elf"
    path.write_bytes(PROGRAM_BYTES)
    return path


@pytest.fixture()
def program_hash() -> str:
    return hashlib.sha256(PROGRAM_BYTES).hexdigest()


# ----------------------------
# Service context
# ----------------------------
@pytest.fixture()
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture()
def work_dir(tmp_path: Path) -> Path:
    return tmp_path / "work"


@pytest_asyncio.fixture()
async def ctx(work_dir: Path, engine: FakeEngine) -> AsyncIterator[ServiceContext]:
    context = ServiceContext.create(
        eth_rpc_url=RPC_URL,
        registry_contract_address=REGISTRY,
        temp_dir_base=work_dir,
        engine=engine,
        http_timeout_s=5.0,
    )
    try:
        yield context
    finally:
        await context.aclose()
