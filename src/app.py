"""Bookstream FastAPI application.

Serves the catalogue and notifications HTTP surfaces. Each request is
wrapped in the correct domain context based on URL prefix and tagged with a
correlation id (taken from ``X-Correlation-ID`` or generated), which is
echoed back on the response and carried by every event the request publishes.

On startup the broker is connected and the topology declared; a failure
there aborts startup.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager
from uuid import uuid4

import structlog

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Domains are initialized at module level so uvicorn workers share them.
# PROTEAN_ENV selects the config overlay from each domain.toml.
from catalogue.domain import catalogue  # noqa: E402
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from notifications.domain import notifications  # noqa: E402

from shared.api import register_exception_handlers
from shared.config import MessagingSettings, build_broker
from shared.logging import bind_correlation_id, unbind_correlation_id
from shared.messaging import constants
from shared.messaging.broker import Broker
from shared.messaging.publisher import EventPublisher
from shared.messaging.topology import build_topology, declare_topology

catalogue.init()
notifications.init()

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Route-to-domain mapping
# ---------------------------------------------------------------------------
_ROUTE_DOMAIN_MAP = {
    "/books": catalogue,
    "/notifications": notifications,
}


def _resolve_domain(path: str):
    """Return the domain for the given request path, or None."""
    for prefix, domain in _ROUTE_DOMAIN_MAP.items():
        if path.startswith(prefix):
            return domain
    return None


def create_app(settings: MessagingSettings | None = None, broker: Broker | None = None) -> FastAPI:
    """Build the application. ``broker`` overrides the one the settings select."""
    settings = settings or MessagingSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        from notifications.notification.delivery import NotificationDispatcher

        app_broker = broker or build_broker(settings)
        if broker is None and settings.broker_backend == "memory":
            logger.warning("In-memory broker: published events stay in this process until it exits")
        await app_broker.connect()
        try:
            await declare_topology(app_broker, build_topology(settings.message_ttl_ms))
            app.state.broker = app_broker
            app.state.publisher = EventPublisher(
                app_broker,
                publish_timeout=settings.broker_publish_timeout,
                retry_backoff=settings.publish_retry_backoff,
            )
            app.state.dispatcher = NotificationDispatcher(timeout=settings.delivery_timeout)
            logger.info("Application started", broker_backend=settings.broker_backend)
            yield
        finally:
            await app_broker.close()
            logger.info("Application stopped")

    app = FastAPI(
        title="Bookstream API",
        description="Book catalogue with event-driven notifications",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the correct Protean domain context and bind the correlation id."""
        correlation_id = request.headers.get(constants.CORRELATION_ID_HEADER) or str(uuid4())
        request.state.correlation_id = correlation_id
        bind_correlation_id(correlation_id)
        try:
            domain = _resolve_domain(request.url.path)
            if domain is not None:
                with domain.domain_context():
                    response = await call_next(request)
            else:
                # No domain match: health check, docs
                response = await call_next(request)
        finally:
            unbind_correlation_id()
        response.headers[constants.CORRELATION_ID_HEADER] = correlation_id
        return response

    register_exception_handlers(app)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------
    from catalogue.api import book_router
    from notifications.api.routes import router as notifications_router

    app.include_router(book_router)
    app.include_router(notifications_router)

    # -----------------------------------------------------------------------
    # Health / root
    # -----------------------------------------------------------------------
    @app.get("/health")
    async def health():
        return JSONResponse(
            content={
                "status": "ok",
                "broker": settings.broker_backend,
                "domains": {
                    "catalogue": {"name": catalogue.name},
                    "notifications": {"name": notifications.name},
                },
            }
        )

    return app


app = create_app()
