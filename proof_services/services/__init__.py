"""
proof_services.services
=======================

Job orchestrators. Each one validates a request, allocates its workspaces,
resolves and verifies the program, runs the prover and releases everything
before returning.

Public submodules
-----------------
- proof : generate_proof(), generate_coprocessor_proof()
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING

__all__ = ["proof"]


def __getattr__(name: str):
    if name in __all__:
        return import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


if TYPE_CHECKING:
    from . import proof
