"""
Operator CLI for Proof Services.

Commands:
  - serve : run the HTTP API under uvicorn
  - prove : run one proof job locally and print the ProofResult JSON
  - hash  : print the SHA-256 program hash of a binary (what the registry stores)

Usage:
  python -m proof_services.cli <command> [options]
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import typer

from .config import get_settings
from .context import ServiceContext
from .errors import ProofServiceError
from .jobs import JOBS, dispatch
from .logging import setup_logging

app = typer.Typer(add_completion=False, help="Proof Services: resolve, verify and prove zkVM programs")


def _read_request(source: str) -> str:
    """``-`` reads stdin; an existing file path is read; anything else is inline JSON."""
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if path.is_file():
        return path.read_text(encoding="utf-8")
    return source


@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: $HOST or 0.0.0.0)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default: $PORT or 8080)"),
    reload: bool = typer.Option(False, "--reload", help="Enable autoreload (dev only)"),
):
    """
    Run the HTTP API.
    """
    from .main import run

    cfg = get_settings()
    run(host or cfg.host, port or cfg.port, reload=reload, log_level=cfg.log_level)


@app.command("prove")
def prove(
    job_id: int = typer.Argument(..., help=f"Job id ({', '.join(f'{k}={v.name}' for k, v in JOBS.items())})"),
    request: str = typer.Argument(..., help="Request JSON: inline, a file path, or '-' for stdin"),
):
    """
    Run one proof job to completion and print the result as JSON.
    """
    cfg = get_settings()
    setup_logging(level=cfg.log_level, log_format=cfg.log_format)
    payload = _read_request(request)

    async def _run():
        ctx = ServiceContext.from_settings(cfg)
        try:
            return await dispatch(ctx, job_id, payload)
        finally:
            await ctx.aclose()

    try:
        result = asyncio.run(_run())
    except ProofServiceError as e:
        typer.echo(json.dumps(e.to_problem(), indent=2), err=True)
        raise typer.Exit(code=1)

    typer.echo(result.model_dump_json(indent=2))


@app.command("hash")
def hash_program(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Program binary (ELF)"),
    prefix: bool = typer.Option(True, "--prefix/--no-prefix", help="Prefix the digest with 0x"),
):
    """
    Print the SHA-256 program hash of a binary.
    """
    from .adapters.fetcher import sha256_file

    digest = sha256_file(path)
    typer.echo(("0x" if prefix else "") + digest)


def _entry():
    # Allow: python -m proof_services.cli
    app()


if __name__ == "__main__":
    _entry()
