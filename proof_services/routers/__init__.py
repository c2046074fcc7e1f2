"""
Routers package: aggregates all HTTP routes into a single APIRouter.

Usage (from app factory):
    from proof_services.routers import build_router
    app.include_router(build_router())
"""

from __future__ import annotations

from fastapi import APIRouter

from .health import router as health_router
from .jobs import router as jobs_router


def build_router() -> APIRouter:
    root = APIRouter()
    root.include_router(health_router)
    root.include_router(jobs_router)
    return root


__all__ = ["build_router"]
