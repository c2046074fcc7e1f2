"""
Adapters over the external systems a proof job touches.

- registry : ProgramRegistry lookup over Ethereum JSON-RPC (eth_call)
- fetcher  : content-addressed program download/copy + SHA-256 verification
- engine   : proving-engine boundary (abstract engine, cargo-pico CLI driver)
- prover   : per-mode proving strategies and result normalization

Submodules are loaded lazily via PEP 562 (__getattr__).
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING

__all__ = [
    "registry",
    "fetcher",
    "engine",
    "prover",
]


def __getattr__(name: str):
    if name in __all__:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(list(globals().keys()) + __all__)


if TYPE_CHECKING:
    from . import engine, fetcher, prover, registry
