from __future__ import annotations

"""
Exception → RFC7807 "problem+json" mappers for FastAPI.

- ProofServiceError subclasses keep their own status/code/title.
- Starlette HTTPException and RequestValidationError get generic titles.
- Anything else becomes a 500 without leaking internals; the stack is logged.
"""

from typing import Any, Dict, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from proof_services.errors import ProofServiceError
from proof_services.logging import get_logger

PROBLEM_CT = "application/problem+json"

log = get_logger(__name__)


def _base_problem(
    request: Request,
    *,
    status: int,
    title: str,
    detail: Optional[str] = None,
    type_uri: str = "about:blank",
    code: Optional[str] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    prob: Dict[str, Any] = {
        "type": type_uri,
        "title": title,
        "status": status,
        "detail": detail or "",
        "instance": str(request.url.path),
    }
    if code:
        prob["code"] = code
    if extras:
        for k, v in extras.items():
            if k not in prob:
                prob[k] = v
    return prob


def _to_status_title(status_code: int) -> Tuple[int, str]:
    titles = {
        400: "Bad Request",
        404: "Not Found",
        405: "Method Not Allowed",
        422: "Unprocessable Entity",
        500: "Internal Server Error",
        502: "Bad Gateway",
        503: "Service Unavailable",
    }
    return status_code, titles.get(status_code, "Error")


# --------------------------- Handlers ---------------------------


async def _handle_service_error(request: Request, exc: ProofServiceError) -> JSONResponse:
    body = exc.to_problem()
    body["instance"] = str(request.url.path)
    if exc.status_code >= 500:
        log.error("api_error", **body)
    else:
        log.warning("api_error", **body)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(body), media_type=PROBLEM_CT)


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    status, title = _to_status_title(int(exc.status_code))
    detail = str(exc.detail) if getattr(exc, "detail", None) else ""
    body = _base_problem(request, status=status, title=title, detail=detail)
    (log.warning if 400 <= status < 500 else log.error)("http_exception", **body)
    return JSONResponse(status_code=status, content=body, media_type=PROBLEM_CT)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    status, title = _to_status_title(422)
    body = _base_problem(
        request,
        status=status,
        title=title,
        detail="Request validation failed.",
        code="request_validation_error",
        extras={"errors": jsonable_encoder(exc.errors())},
    )
    log.warning("validation_error", **body)
    return JSONResponse(status_code=status, content=body, media_type=PROBLEM_CT)


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    status, title = _to_status_title(500)
    body = _base_problem(
        request,
        status=status,
        title=title,
        detail="An unexpected error occurred.",
        code="internal_error",
    )
    log.exception("unhandled_exception", **body)
    return JSONResponse(status_code=status, content=body, media_type=PROBLEM_CT)


# --------------------------- Installer ---------------------------


def install_error_handlers(app: FastAPI) -> None:
    """Register exception handlers on the given FastAPI app."""
    app.add_exception_handler(ProofServiceError, _handle_service_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected_error)


__all__ = ["install_error_handlers", "PROBLEM_CT"]
