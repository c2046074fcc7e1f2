from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from .config import Settings, get_settings
from .context import ServiceContext
from .logging import get_logger, setup_logging
from .middleware.errors import install_error_handlers
from .routers import build_router
from .version import __version__

log = get_logger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Build the shared ServiceContext on startup (unless one was injected) and
    close its HTTP client on shutdown.
    """
    owned = app.state.context is None
    if owned:
        app.state.context = ServiceContext.from_settings(app.state.settings)
    log.info("app.startup", version=__version__, temp_dir=str(app.state.context.temp_dir_base))
    try:
        yield
    finally:
        if owned:
            await app.state.context.aclose()
            app.state.context = None
        log.info("app.shutdown")


def create_app(settings: Optional[Settings] = None, *, context: Optional[ServiceContext] = None) -> FastAPI:
    """
    FastAPI factory. ``context`` lets callers (tests, embedding services)
    supply a prebuilt ServiceContext; its lifetime then stays with them.
    """
    cfg = settings or get_settings()
    setup_logging(level=cfg.log_level, log_format=cfg.log_format)

    app = FastAPI(
        title="Proof Services",
        version=__version__,
        lifespan=_lifespan,
    )
    app.state.settings = cfg
    app.state.context = context

    install_error_handlers(app)
    app.include_router(build_router())

    return app


__all__ = ["create_app"]
