"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from revbond_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from revbond_gateway.api.v1 import statements, bonds, oracle, kyc
from revbond_gateway.infrastructure.database.session import init_db
from revbond_gateway.infrastructure.observability.logging import setup_logging
from revbond_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="RevBond Gateway",
        description="Bank statement scoring and revenue-backed bond issuance service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

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
    app.include_router(statements.router, prefix="/v1", tags=["statements"])
    app.include_router(oracle.router, prefix="/v1", tags=["oracle"])
    app.include_router(bonds.router, prefix="/v1", tags=["bonds"])
    app.include_router(kyc.router, prefix="/v1", tags=["kyc"])

    return app


app = create_app()
