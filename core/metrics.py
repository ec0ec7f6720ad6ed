"""
Prometheus metrics for the Paddle checkout service.

Exposes request instrumentation plus payment-domain counters at /metrics,
with optional authentication outside development.
"""

from prometheus_fastapi_instrumentator import Instrumentator
from prometheus_client import Counter, Histogram
from fastapi import Request, HTTPException, status
import os

pay_link_requests = Counter(
    "paddle_pay_link_requests_total",
    "Pay-link requests sent to Paddle, by result",
    ["result"],  # success or an ErrorKind value
)

webhook_outcomes = Counter(
    "paddle_webhook_outcomes_total",
    "Inbound Paddle webhooks, by final outcome",
    ["outcome"],  # confirmed or an ErrorKind value
)

paddle_api_latency = Histogram(
    "paddle_api_latency_seconds",
    "Round-trip time of calls to the Paddle vendor API",
    ["endpoint"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 45.0],
)


def init_metrics(app):
    """
    Initialize Prometheus metrics instrumentation for the FastAPI app.

    Args:
        app: FastAPI application instance

    Returns:
        Instrumentator instance
    """
    inst = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
    )
    inst.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
    return inst


def add_metrics_auth_middleware(app):
    """
    Protect the /metrics endpoint outside development.
    Set METRICS_AUTH_TOKEN and send it as X-Metrics-Auth, or scrape from a private network.
    """

    @app.middleware("http")
    async def metrics_auth_middleware(request: Request, call_next):
        if request.url.path != "/metrics":
            return await call_next(request)

        if os.getenv("ENVIRONMENT", "development") in ("development", "test"):
            return await call_next(request)

        auth_header = request.headers.get("X-Metrics-Auth")
        expected_token = os.getenv("METRICS_AUTH_TOKEN")
        if expected_token and auth_header == expected_token:
            return await call_next(request)

        client_ip = request.client.host if request.client else None
        if client_ip and client_ip.startswith(("10.", "192.168.", "172.")):
            return await call_next(request)

        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Metrics endpoint access denied",
        )
