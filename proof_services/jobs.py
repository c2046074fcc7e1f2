"""
Job table and dispatch.

Proof jobs are addressed by a small integer id:

    1  generate_proof              ProofRequest
    2  generate_coprocessor_proof  BundleProofRequest

``dispatch`` validates a raw payload against the job's request model and
runs the handler. Payloads may be a mapping, a JSON string/bytes, or an
already-built request model.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Type, Union

from pydantic import BaseModel, ValidationError

from proof_services.context import ServiceContext
from proof_services.errors import InvalidInput, SerdeError
from proof_services.models.coprocessor import BundleProofRequest
from proof_services.models.proof import ProofRequest, ProofResult
from proof_services.services.proof import generate_coprocessor_proof, generate_proof

GENERATE_PROOF_JOB_ID = 1
GENERATE_COPROCESSOR_PROOF_JOB_ID = 2

Payload = Union[BaseModel, Dict[str, Any], str, bytes]


@dataclass(frozen=True)
class JobSpec:
    name: str
    request_model: Type[BaseModel]
    handler: Callable[[ServiceContext, Any], Awaitable[ProofResult]]


JOBS: Dict[int, JobSpec] = {
    GENERATE_PROOF_JOB_ID: JobSpec("generate_proof", ProofRequest, generate_proof),
    GENERATE_COPROCESSOR_PROOF_JOB_ID: JobSpec(
        "generate_coprocessor_proof", BundleProofRequest, generate_coprocessor_proof
    ),
}


def parse_request(job_id: int, payload: Payload) -> BaseModel:
    job = JOBS.get(job_id)
    if job is None:
        raise InvalidInput(f"Unknown job id {job_id} (known: {sorted(JOBS)})")
    if isinstance(payload, job.request_model):
        return payload
    try:
        if isinstance(payload, (str, bytes)):
            return job.request_model.model_validate_json(payload)
        return job.request_model.model_validate(payload)
    except ValidationError as e:
        raise SerdeError(
            f"Failed to parse {job.name} request: {e.error_count()} validation error(s)",
            details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        ) from e


async def dispatch(ctx: ServiceContext, job_id: int, payload: Payload) -> ProofResult:
    request = parse_request(job_id, payload)
    return await JOBS[job_id].handler(ctx, request)


__all__ = [
    "GENERATE_PROOF_JOB_ID",
    "GENERATE_COPROCESSOR_PROOF_JOB_ID",
    "JOBS",
    "JobSpec",
    "parse_request",
    "dispatch",
]
