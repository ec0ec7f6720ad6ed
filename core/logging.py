import logging
import sys
import structlog
import os
from opentelemetry.instrumentation.logging import LoggingInstrumentor

# Global variable to store test output
test_output = []


def get_log_level():
    """Get log level from environment or default to INFO"""
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_log_renderer():
    """Get log renderer based on environment"""
    env = os.getenv("ENVIRONMENT", "development")
    # JSON lines for tests and production
    if env in ["test", "production"]:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True, sort_keys=False)


def test_output_processor(logger, method_name, event_dict):
    """Custom processor that stores output for test assertions"""
    env = os.getenv("ENVIRONMENT", "development")
    if env == "test":
        test_output.append(event_dict.copy())
    return event_dict


def configure_logging():
    """Set up structlog + OTEL context injection."""
    shared_processors = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.ExceptionPrettyPrinter(),
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            test_output_processor,
            get_log_renderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    env = os.getenv("ENVIRONMENT", "development")
    if env == "test":
        # In test mode, write to stdout for easier capture
        handler = logging.StreamHandler(sys.stdout)
    else:
        handler = logging.StreamHandler()

    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]  # Replace any existing handlers
    root_logger.setLevel(get_log_level())

    # Silence Uvicorn noise but keep access logs routed through structlog
    logging.getLogger("uvicorn.error").handlers.clear()
    logging.getLogger("uvicorn.access").handlers.clear()

    # Initialize OpenTelemetry logging instrumentation AFTER configuring logging
    LoggingInstrumentor().instrument(set_logging_format=False)


class PaddleEvents:
    """Standard names for business event logs"""

    API_ENTRY = "api.request"
    PAY_LINK_REQUESTED = "paylink.requested"
    PAY_LINK_CREATED = "paylink.created"
    PAY_LINK_FAILED = "paylink.failed"
    PUBLIC_KEY_FETCHED = "public_key.fetched"
    PUBLIC_KEY_FETCH_FAILED = "public_key.fetch_failed"
    PUBLIC_KEY_INVALIDATED = "public_key.invalidated"
    WEBHOOK_RECEIVED = "webhook.received"
    WEBHOOK_CONFIRMED = "webhook.confirmed"
    WEBHOOK_REJECTED = "webhook.rejected"
    ORDER_PAID = "order.paid"
    SETTINGS_UPDATED = "settings.updated"


# Configure logging when module is imported
configure_logging()
