from __future__ import annotations

"""
Job routes

Endpoints:
  - POST /jobs/{job_id} : run one proof job to completion and return its ProofResult

The body is the job's request document (ProofRequest for job 1,
BundleProofRequest for job 2). Validation happens in ``jobs.dispatch`` so
malformed bodies surface as serde_error problems like every other failure.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Path, Request

from proof_services.context import ServiceContext
from proof_services.jobs import dispatch
from proof_services.models.proof import ProofResult

router = APIRouter(tags=["jobs"])


def _context(request: Request) -> ServiceContext:
    return request.app.state.context


@router.post(
    "/jobs/{job_id}",
    summary="Run a proof job",
    response_model=ProofResult,
)
async def run_job(
    request: Request,
    job_id: int = Path(..., ge=0, description="1 = generate_proof, 2 = generate_coprocessor_proof"),
    payload: Dict[str, Any] = Body(...),
) -> ProofResult:
    return await dispatch(_context(request), job_id, payload)
