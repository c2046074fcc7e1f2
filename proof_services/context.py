from __future__ import annotations

"""
Per-process service context.

Built once at startup and shared read-only by every concurrently running job:
the outbound HTTP client, registry endpoint defaults, the workspace base
directory and the proving engine. Nothing here is mutated per request.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import httpx

from proof_services.errors import ConfigError
from proof_services.logging import get_logger
from proof_services.models.common import is_address

if TYPE_CHECKING:
    from proof_services.adapters.engine import ProvingEngine
    from proof_services.config import Settings

log = get_logger(__name__)


def _ensure_base_dir(path: Path) -> Path:
    path = Path(path).expanduser()
    if not path.exists():
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"Failed to create temp base dir {path}: {e}") from e
    elif not path.is_dir():
        raise ConfigError(f"Temp base path {path} is not a directory")
    return path.resolve()


@dataclass(frozen=True)
class ServiceContext:
    http_client: httpx.AsyncClient
    eth_rpc_url: str
    registry_contract_address: str
    temp_dir_base: Path
    engine: "ProvingEngine"
    setup_cache_dir: Optional[Path] = None
    prover_field: str = "kb"

    @classmethod
    def create(
        cls,
        *,
        eth_rpc_url: str,
        registry_contract_address: str,
        temp_dir_base: Path,
        engine: "ProvingEngine",
        http_client: Optional[httpx.AsyncClient] = None,
        http_timeout_s: float = 60.0,
        setup_cache_dir: Optional[Path] = None,
        prover_field: str = "kb",
    ) -> "ServiceContext":
        """
        Validate configuration and build the context.

        Creates ``temp_dir_base`` when missing; raises ConfigError when it
        exists but is not a directory, or when the RPC URL / registry
        address are malformed.
        """
        try:
            url = httpx.URL(eth_rpc_url)
        except httpx.InvalidURL as e:
            raise ConfigError(f"Invalid ETH RPC URL: {eth_rpc_url!r}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ConfigError(f"Invalid ETH RPC URL: {eth_rpc_url!r}")
        if not is_address(registry_contract_address):
            raise ConfigError(f"Invalid registry contract address: {registry_contract_address!r}")

        base = _ensure_base_dir(temp_dir_base)
        if setup_cache_dir is not None:
            setup_cache_dir = _ensure_base_dir(setup_cache_dir)

        client = http_client or httpx.AsyncClient(timeout=http_timeout_s, follow_redirects=True)
        log.info(
            "context.created",
            rpc_url=eth_rpc_url,
            registry=registry_contract_address,
            temp_dir=str(base),
            engine=type(engine).__name__,
        )
        return cls(
            http_client=client,
            eth_rpc_url=eth_rpc_url,
            registry_contract_address=registry_contract_address,
            temp_dir_base=base,
            engine=engine,
            setup_cache_dir=setup_cache_dir,
            prover_field=prover_field,
        )

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        *,
        engine: Optional["ProvingEngine"] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "ServiceContext":
        from proof_services.adapters.engine import PicoCliEngine

        return cls.create(
            eth_rpc_url=settings.eth_rpc_url,
            registry_contract_address=settings.registry_contract_address,
            temp_dir_base=settings.temp_dir_base,
            engine=engine or PicoCliEngine(settings.prover_cmd, scratch_base=settings.temp_dir_base),
            http_client=http_client,
            http_timeout_s=settings.http_timeout_s,
            setup_cache_dir=settings.prover_setup_dir,
            prover_field=settings.prover_field,
        )

    async def aclose(self) -> None:
        await self.http_client.aclose()


__all__ = ["ServiceContext"]
