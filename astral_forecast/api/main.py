"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from astral_forecast.api.middleware import RequestIDMiddleware, MetricsMiddleware
from astral_forecast.api.v1 import analysis, bills, projections
from astral_forecast.infrastructure.observability.logging import setup_logging
from astral_forecast.config import settings

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create the forecasting service with its routers and observability hooks"""
    app = FastAPI(
        title="Astral Forecast",
        description="Recurring bill projection, bill variance tracking and financial health analysis",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Last added runs first, so request ids exist before timing starts
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(projections.router, prefix="/v1", tags=["projections"])
    app.include_router(bills.router, prefix="/v1", tags=["bills"])
    app.include_router(analysis.router, prefix="/v1", tags=["analysis"])

    return app


app = create_app()
