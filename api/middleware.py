import structlog
from fastapi import Request

from core.logging import PaddleEvents


async def log_api_entry(request: Request, call_next):
    """Middleware to log API entries with request details"""
    # Get a fresh logger each time to ensure test configurations are respected
    log = structlog.get_logger(__name__)

    # Query string only; request bodies are not logged.
    log.info(
        PaddleEvents.API_ENTRY,
        method=request.method,
        path=request.url.path,
        client_host=request.client.host if request.client else None,
        query_params=dict(request.query_params),
    )
    response = await call_next(request)
    return response
