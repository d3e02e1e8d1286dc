"""FastAPI application factory"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy.orm import sessionmaker
from starlette.responses import Response

from layaway_hub.api.middleware import RequestIDMiddleware, MetricsMiddleware
from layaway_hub.api.v1 import configuration, requests, trust
from layaway_hub.infrastructure.clients.messaging import NotificationDispatcher
from layaway_hub.infrastructure.database.session import SessionLocal, engine, init_db
from layaway_hub.infrastructure.observability.logging import setup_logging
from layaway_hub.services.configuration import ConfigurationService
from layaway_hub.services.lifecycle import LifecycleController
from layaway_hub.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def _create_schema(app: FastAPI):
    init_db(engine)
    yield


def create_app(
    session_factory: Optional[sessionmaker] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Without a session_factory the app uses the configured database and
    creates its tables on startup.
    """
    app = FastAPI(
        title="Layaway Hub",
        description="Layaway financing lifecycle and customer trust ledger",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=_create_schema if session_factory is None else None,
    )

    session_factory = session_factory or SessionLocal
    app.state.controller = LifecycleController(session_factory, dispatcher)
    app.state.configuration = ConfigurationService(session_factory)

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(requests.router, prefix="/v1", tags=["financing requests"])
    app.include_router(configuration.router, prefix="/v1", tags=["configuration"])
    app.include_router(trust.router, prefix="/v1", tags=["trust"])

    return app


app = create_app()
