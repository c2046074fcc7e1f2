"""
Proof Services
==============

Resolve, fetch, verify and prove content-addressed zkVM programs on behalf of
job requests.

This package exposes:

- ``__version__``: semantic version string
- ``build_app()``: convenience creator for a configured FastAPI app

Prefer importing submodules directly for specific concerns:
``proof_services.config``, ``proof_services.services.proof``,
``proof_services.adapters.*``, etc.
"""

from __future__ import annotations

from .version import __version__

__all__ = ["__version__", "build_app"]


def build_app():
    """
    Create and return a fully configured FastAPI application.

    Importing lazily avoids importing FastAPI (and related deps) when
    consumers only need the proving pipeline or version metadata.
    """
    from .app import create_app

    return create_app()
