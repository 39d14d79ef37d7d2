"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan builds the RealtimeHub (registry, transport,
dispatcher) and tears it down on shutdown. Middleware, CORS, and
routers all registered here.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pocketbook import __version__
from pocketbook.api import api_router
from pocketbook.config import Settings, settings as default_settings
from pocketbook.middleware.request_id import RequestIdMiddleware
from pocketbook.middleware.security import SecurityHeadersMiddleware
from pocketbook.realtime.hub import RealtimeHub
from pocketbook.realtime.websocket import router as ws_router

logger = structlog.get_logger()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown lifecycle.

        Learn: Anything before `yield` runs at startup, after `yield`
        runs at shutdown. The hub lives exactly as long as the app.
        """
        logger.info(
            "pocketbook.starting",
            version=__version__,
            environment=settings.environment,
            port=settings.port,
            backplane=settings.realtime_backplane,
        )
        if not settings.require_signed_token:
            logger.warning("pocketbook.unsigned_socket_auth")

        hub = RealtimeHub.from_settings(settings)
        await hub.start()
        app.state.realtime = hub

        yield

        logger.info("pocketbook.shutdown", **hub.registry.snapshot())
        await hub.stop()

    app = FastAPI(
        title="Pocketbook Realtime",
        description="Live expense and category change notifications over WebSocket",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → CORS → handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: pocketbook.main:app)
app = create_app()
