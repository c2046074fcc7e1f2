from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from proof_services.adapters.engine import EVM_INPUTS_FILE, PROVING_KEY_FILE, PV_FILE, VERIFYING_KEY_FILE
from proof_services.adapters.prover import execute_prove, read_evm_public_values
from proof_services.errors import HexError, IoError, ProvingError
from proof_services.models.proof import ProvingMode

from .conftest import FakeEngine


@pytest.fixture()
def out_base(tmp_path: Path) -> Path:
    path = tmp_path / "out"
    path.mkdir()
    return path


# --------------------------------- Fast --------------------------------------


@pytest.mark.asyncio
async def test_fast_mode_returns_in_memory_proof(program_file, out_base):
    engine = FakeEngine(public_values=b"\xca\xfe", proof=b"\x01\x02")
    res = await execute_prove(engine, program_file, "0x0a0b", ProvingMode.FAST, out_base)

    assert res.proving_type is ProvingMode.FAST
    assert res.public_values == "cafe"
    assert res.proof == "0102"
    assert res.output_dir is None
    assert res.inputs == "0x0a0b"
    assert res.program_hash == ""
    assert engine.calls[0]["stdin"] == b"\x0a\x0b"
    assert list(out_base.iterdir()) == []


@pytest.mark.asyncio
async def test_fast_mode_requires_public_values(program_file, out_base):
    engine = FakeEngine(public_values=None)
    with pytest.raises(ProvingError, match="Fast proof missing public values stream"):
        await execute_prove(engine, program_file, "", ProvingMode.FAST, out_base)


# --------------------------------- Full --------------------------------------


@pytest.mark.asyncio
async def test_full_mode_writes_artifacts_under_output_base(program_file, out_base):
    engine = FakeEngine()
    res = await execute_prove(engine, program_file, "ff", ProvingMode.FULL, out_base)

    out_dir = Path(res.output_dir)
    assert out_dir.parent == out_base
    assert out_dir.name.startswith("proof_full_")
    assert (out_dir / "embed_proof.bin").read_bytes() == b"proof-bytes"
    assert res.public_values == "00010203"
    assert res.proof == b"proof-bytes".hex()


@pytest.mark.asyncio
async def test_engine_failure_is_proving_error(program_file, out_base):
    engine = FakeEngine(fail="guest panicked")
    with pytest.raises(ProvingError, match="Full proving failed: guest panicked"):
        await execute_prove(engine, program_file, "", ProvingMode.FULL, out_base)


@pytest.mark.asyncio
async def test_bad_input_hex_is_hex_error(program_file, out_base):
    engine = FakeEngine()
    with pytest.raises(HexError):
        await execute_prove(engine, program_file, "xyz", ProvingMode.FULL, out_base)
    assert engine.calls == []


@pytest.mark.asyncio
async def test_missing_binary_is_io_error(tmp_path, out_base):
    engine = FakeEngine()
    with pytest.raises(IoError):
        await execute_prove(engine, tmp_path / "missing.elf", "", ProvingMode.FULL, out_base)
    assert engine.calls == []


# ------------------------------ FullWithEvm ----------------------------------


@pytest.mark.asyncio
async def test_evm_mode_runs_setup_once_with_key_cache(program_file, out_base, tmp_path):
    cache = tmp_path / "setup-cache"
    cache.mkdir()
    engine = FakeEngine(public_values=b"\x42")

    first = await execute_prove(
        engine, program_file, "", ProvingMode.FULL_WITH_EVM, out_base, setup_cache_dir=cache, field="bb"
    )
    assert first.proving_type is ProvingMode.FULL_WITH_EVM
    assert first.public_values == "42"
    assert first.proof == b"proof-bytes".hex()
    assert Path(first.output_dir).name.startswith("proof_evm_")
    assert engine.calls[0]["need_setup"] is True
    assert engine.calls[0]["field"] == "bb"
    assert (cache / "vm_pk").read_bytes() == b"pk"
    assert (cache / "vm_vk").read_bytes() == b"vk"

    await execute_prove(engine, program_file, "", ProvingMode.FULL_WITH_EVM, out_base, setup_cache_dir=cache)
    assert engine.calls[1]["need_setup"] is False


@pytest.mark.asyncio
async def test_evm_mode_without_cache_always_runs_setup(program_file, out_base):
    engine = FakeEngine()
    await execute_prove(engine, program_file, "", ProvingMode.FULL_WITH_EVM, out_base)
    await execute_prove(engine, program_file, "", ProvingMode.FULL_WITH_EVM, out_base)
    assert [c["need_setup"] for c in engine.calls] == [True, True]


@pytest.mark.asyncio
async def test_evm_mode_falls_back_to_pv_file(program_file, out_base):
    engine = FakeEngine(public_values=b"\x01\x02", evm_layout="pv")
    res = await execute_prove(engine, program_file, "", ProvingMode.FULL_WITH_EVM, out_base)
    assert res.public_values == "0102"


@pytest.mark.asyncio
async def test_evm_mode_without_public_values_fails(program_file, out_base):
    engine = FakeEngine(evm_layout="none")
    with pytest.raises(ProvingError, match="No public values"):
        await execute_prove(engine, program_file, "", ProvingMode.FULL_WITH_EVM, out_base)


@pytest.mark.asyncio
async def test_evm_mode_without_proof_file_fails(program_file, out_base):
    engine = FakeEngine(write_evm_proof=False)
    with pytest.raises(ProvingError, match="EVM proof file not found"):
        await execute_prove(engine, program_file, "", ProvingMode.FULL_WITH_EVM, out_base)


def test_evm_public_values_from_inputs_json(tmp_path):
    (tmp_path / EVM_INPUTS_FILE).write_text(json.dumps({"publicValues": "0xdeadbeef"}))
    (tmp_path / PV_FILE).write_text("00")
    assert read_evm_public_values(tmp_path) == bytes.fromhex("deadbeef")


def test_evm_public_values_malformed_inputs_json(tmp_path):
    (tmp_path / EVM_INPUTS_FILE).write_text("{not json")
    with pytest.raises(ProvingError, match="Malformed"):
        read_evm_public_values(tmp_path)

    (tmp_path / EVM_INPUTS_FILE).write_text(json.dumps({"proof": []}))
    with pytest.raises(ProvingError, match="publicValues"):
        read_evm_public_values(tmp_path)

    (tmp_path / EVM_INPUTS_FILE).write_text(json.dumps({"publicValues": "0xzz"}))
    with pytest.raises(HexError):
        read_evm_public_values(tmp_path)


# ------------------------------ setup cache ----------------------------------


@pytest.mark.asyncio
async def test_concurrent_evm_jobs_share_cache_safely(program_file, out_base, tmp_path):
    cache = tmp_path / "setup-cache"
    engine = FakeEngine()

    results = await asyncio.gather(
        *(
            execute_prove(engine, program_file, f"{i:02x}", ProvingMode.FULL_WITH_EVM, out_base, setup_cache_dir=cache)
            for i in range(6)
        )
    )

    assert len({r.output_dir for r in results}) == 6
    assert sorted(p.name for p in cache.iterdir()) == [PROVING_KEY_FILE, VERIFYING_KEY_FILE]
    assert (cache / PROVING_KEY_FILE).read_bytes() == b"pk"
    assert (cache / VERIFYING_KEY_FILE).read_bytes() == b"vk"

    await execute_prove(engine, program_file, "", ProvingMode.FULL_WITH_EVM, out_base, setup_cache_dir=cache)
    assert engine.calls[-1]["need_setup"] is False


@pytest.mark.asyncio
async def test_partial_cache_is_not_seeded(program_file, out_base, tmp_path):
    cache = tmp_path / "setup-cache"
    cache.mkdir()
    (cache / VERIFYING_KEY_FILE).write_bytes(b"stale-vk")
    engine = FakeEngine()

    res = await execute_prove(engine, program_file, "", ProvingMode.FULL_WITH_EVM, out_base, setup_cache_dir=cache)

    assert engine.calls[0]["need_setup"] is True
    assert (Path(res.output_dir) / VERIFYING_KEY_FILE).read_bytes() == b"vk"
    assert (cache / PROVING_KEY_FILE).read_bytes() == b"pk"
    assert (cache / VERIFYING_KEY_FILE).read_bytes() == b"vk"
