from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter

from proof_services.jobs import JOBS
from proof_services.version import __version__

router = APIRouter(tags=["health"])

_PROCESS_START = time.time()


@router.get("/healthz", summary="Liveness probe", response_model=None)
def healthz() -> Dict[str, Any]:
    """
    Always 200 while the process is serving requests; lists the job ids it
    accepts.
    """
    return {
        "ok": True,
        "version": __version__,
        "jobs": sorted(JOBS),
        "started_at": datetime.fromtimestamp(_PROCESS_START, tz=timezone.utc).isoformat(),
        "uptime_seconds": round(max(0.0, time.time() - _PROCESS_START), 3),
    }
