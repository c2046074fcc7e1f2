"""
Uvicorn launcher for Proof Services.

Usage:
  python -m proof_services.main [--host 0.0.0.0] [--port 8080]
                                [--workers 1] [--reload]
                                [--log-level info]

Defaults come from the environment (HOST, PORT, WORKERS, RELOAD, LOG_LEVEL).
"""

from __future__ import annotations

import argparse
import os
from typing import Optional

import uvicorn

from .config import get_settings


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "y", "on")


def run(
    host: str,
    port: int,
    *,
    workers: int = 1,
    reload: bool = False,
    log_level: str = "info",
) -> None:
    if reload and workers != 1:
        print("[proof-services] --reload implies --workers=1; overriding.")
        workers = 1

    # Factory import string so each worker builds its own ServiceContext.
    uvicorn.run(
        "proof_services.app:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=log_level.lower(),
        reload=reload,
        workers=workers,
    )


def main(argv: Optional[list[str]] = None) -> None:
    cfg = get_settings()

    parser = argparse.ArgumentParser(description="Run Proof Services (uvicorn)")
    parser.add_argument("--host", default=cfg.host, help="Bind address (default: %(default)s)")
    parser.add_argument("--port", type=int, default=cfg.port, help="Port (default: %(default)s)")
    parser.add_argument("--workers", type=int, default=int(os.getenv("WORKERS") or 1), help="Number of workers (default: %(default)s)")
    parser.add_argument("--reload", action="store_true", default=_env_bool("RELOAD", False), help="Enable autoreload (dev only)")
    parser.add_argument("--log-level", default=cfg.log_level.lower(), help="Log level for uvicorn (default: %(default)s)")

    args = parser.parse_args(argv)
    run(args.host, args.port, workers=args.workers, reload=args.reload, log_level=args.log_level)


if __name__ == "__main__":
    main()
