from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from proof_services import cli
from proof_services.config import get_settings
from proof_services.context import ServiceContext

from .conftest import PROGRAM_BYTES, FakeEngine

runner = CliRunner()


@pytest.fixture()
def cli_env(monkeypatch: Any, work_dir: Path):
    monkeypatch.setenv("TEMP_DIR_BASE", str(work_dir))
    monkeypatch.setenv("LOG_FORMAT", "console")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_hash_prints_program_hash(program_file: Path):
    result = runner.invoke(cli.app, ["hash", str(program_file)])
    assert result.exit_code == 0
    assert result.output.strip() == "0x" + hashlib.sha256(PROGRAM_BYTES).hexdigest()

    bare = runner.invoke(cli.app, ["hash", "--no-prefix", str(program_file)])
    assert bare.output.strip() == hashlib.sha256(PROGRAM_BYTES).hexdigest()


def test_prove_runs_job_locally(cli_env, monkeypatch: Any, program_file: Path, program_hash: str, tmp_path: Path):
    original = ServiceContext.from_settings.__func__

    def _with_fake_engine(cls, settings, **kw):
        return original(cls, settings, engine=FakeEngine())

    monkeypatch.setattr(ServiceContext, "from_settings", classmethod(_with_fake_engine))

    request = tmp_path / "request.json"
    request.write_text(
        json.dumps(
            {
                "program_hash": program_hash,
                "inputs": "00ff",
                "proving_type": "Fast",
                "program_location_override": {"LocalPath": str(program_file)},
            }
        )
    )

    result = runner.invoke(cli.app, ["prove", "1", str(request)])
    assert result.exit_code == 0, result.output
    doc = json.loads(result.stdout[result.stdout.index("{"):])
    assert doc["program_hash"] == program_hash
    assert doc["inputs"] == "00ff"
    assert doc["proving_type"] == "Fast"


def test_prove_reports_problem_on_failure(cli_env):
    result = runner.invoke(cli.app, ["prove", "1", '{"program_hash": "xyz"}'])
    assert result.exit_code == 1
    assert "invalid_input" in result.output
