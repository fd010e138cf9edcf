"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from billflow.api.middleware import RequestIDMiddleware, MetricsMiddleware
from billflow.api.v1 import accounts, batches, bills, transactions
from billflow.infrastructure.cache import InMemoryQueryCache
from billflow.infrastructure.observability.logging import setup_logging
from billflow.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="billflow",
        description="Recurring bill autopay settlement and account ledger service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # One cache per app instance, injected into routes via get_balance_cache
    app.state.balance_cache = InMemoryQueryCache(default_ttl_seconds=settings.balance_cache_ttl_seconds)

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
    app.include_router(batches.router, prefix="/v1", tags=["batches"])
    app.include_router(bills.router, prefix="/v1", tags=["bills"])
    app.include_router(accounts.router, prefix="/v1", tags=["accounts"])
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])

    return app


app = create_app()
