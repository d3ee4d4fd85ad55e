"""
FastAPI application factory.

The app keeps no module-level state: settings, the session store and the
TrueLayer client factory live on ``app.state`` and reach handlers through
``dependencies``.
"""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import FastAPI

from .. import __version__
from ..config import Settings, load_settings
from ..storage import SessionStore
from ..truelayer import TrueLayerClient
from .exception_handlers import setup_exception_handlers
from .routers import dashboard_router, truelayer_router

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Settings], TrueLayerClient]


def create_app(
    settings: Settings | None = None,
    *,
    client_factory: ClientFactory | None = None,
    session_store: SessionStore | None = None,
) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(
        title="Kiwi Dashboard",
        description="Open Banking account aggregation and transaction dashboard",
        version=__version__,
    )

    app.state.settings = settings
    app.state.client_factory = client_factory or TrueLayerClient
    app.state.session_store = session_store or SessionStore(
        settings.cache_dir / "sessions",
        ttl_seconds=settings.session_ttl_seconds,
    )

    setup_exception_handlers(app)

    app.include_router(truelayer_router, tags=["TrueLayer"])
    app.include_router(dashboard_router, tags=["Dashboard"])

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    logger.info("Application created (TrueLayer env=%s)", settings.truelayer_env)
    return app
