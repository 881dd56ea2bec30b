"""FastAPI application factory"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from recycle_ledger.api.errors import register_error_handlers
from recycle_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from recycle_ledger.api.v1 import appointments, credits
from recycle_ledger.config import Settings, settings as default_settings
from recycle_ledger.infrastructure.database.ledger import LedgerStore, create_ledger_store, create_schema
from recycle_ledger.infrastructure.observability.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.settings.create_schema_on_startup:
        create_schema(app.state.store)
    yield


def create_app(app_settings: Optional[Settings] = None, store: Optional[LedgerStore] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    The ledger store is built from settings unless one is passed in; endpoints
    reach it through dependencies.
    """
    app_settings = app_settings or default_settings
    setup_logging(app_settings.log_level)

    app = FastAPI(
        title="Recycle Ledger",
        description="Recycling pickup completion, credit settlement and coupon redemption service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.store = store or create_ledger_store(
        app_settings.database_url,
        max_attempts=app_settings.transaction_max_attempts,
        backoff_base=app_settings.transaction_backoff_base,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_error_handlers(app)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": app_settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(appointments.router, prefix="/v1", tags=["appointments"])
    app.include_router(credits.router, prefix="/v1", tags=["credits"])

    return app


app = create_app()
