"""
Paddle Checkout - Main Application Entry Point

This module initializes the FastAPI application and sets up the core routing.
The service mints Paddle pay links for store orders and confirms payments
from Paddle's signed completion webhooks.
"""

import structlog
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from api import routes, webhooks
from api.middleware import log_api_entry
from core.dependencies import clear_settings, get_settings, init_settings
from core.logging import configure_logging
from core.metrics import add_metrics_auth_middleware, init_metrics
from core.settings import Settings
from core.tracing import init_tracer
from db.session import init_db

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI application startup and shutdown events."""
    init_settings()
    settings = get_settings()

    init_tracer(settings.OTEL_SERVICE_NAME, settings.OTEL_EXPORTER_OTLP_ENDPOINT)
    init_db(settings)
    log.info("app.started", environment=settings.ENVIRONMENT)

    yield
    clear_settings()


app = FastAPI(
    title="Paddle Checkout",
    description="""
    ## Paddle payment gateway for store checkouts

    ### Key Features:
    - **Pay links**: one-time Paddle checkout URLs minted per order
    - **Signed webhooks**: payment-completion alerts verified against the vendor public key
    - **Idempotent confirmation**: retried alerts never double-complete an order
    - **Gateway options**: vendor credentials with a lazily cached public key
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

FastAPIInstrumentor.instrument_app(app)

init_metrics(app)
add_metrics_auth_middleware(app)

app.middleware("http")(log_api_entry)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    log.error("api.unhandled_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.get("/")
async def root():
    """Root endpoint providing API information."""
    return {
        "name": "Paddle Checkout",
        "version": "1.0.0",
        "api_documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_spec": "/openapi.json",
        },
        "endpoints": {
            "checkout": "/api/v1/orders/{id}/checkout - Request a Paddle pay link",
            "webhook": "/api/v1/webhook/paddle?order_id={id} - Paddle completion alert",
            "settings": "/api/v1/gateway/settings - Gateway options",
            "health": "/health - Health check endpoint",
            "metrics": "/metrics - Prometheus metrics",
        },
    }


@app.get("/health")
async def health(settings: Settings = Depends(get_settings)):
    """Health check endpoint alias."""
    return await health_check(settings)


@app.get("/healthz")
async def health_check(settings: Settings = Depends(get_settings)):
    """Health check endpoint to verify API status."""
    db_type = (
        "PostgreSQL" if settings.DATABASE_URL.startswith("postgresql") else "SQLite"
    )
    return {
        "status": "ok",
        "app_name": settings.APP_NAME,
        "database": db_type,
        "environment": settings.ENVIRONMENT,
    }


API_PREFIX = "/api/v1"

app.include_router(routes.router, prefix=API_PREFIX, tags=["checkout"])
app.include_router(webhooks.router, prefix=API_PREFIX, tags=["webhooks"])


def main():
    configure_logging()
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
