"""Test the metrics module."""

from unittest.mock import MagicMock, patch

from prometheus_client import REGISTRY, generate_latest

from core.metrics import (
    init_metrics,
    paddle_api_latency,
    pay_link_requests,
)
from payments.types import ErrorKind
from payments.webhook import handle_webhook
from tests.helpers import FakeLedger


def _sample(name, labels):
    return REGISTRY.get_sample_value(name, labels) or 0


def test_pay_link_requests_counter_with_labels():
    """Test pay-link counter with result labels."""
    for result in ("success", ErrorKind.transport_error.value):
        initial = _sample("paddle_pay_link_requests_total", {"result": result})
        pay_link_requests.labels(result=result).inc()
        assert (
            _sample("paddle_pay_link_requests_total", {"result": result})
            == initial + 1
        )


def test_paddle_api_latency_histogram():
    labels = {"endpoint": "api/2.0/user/get_public_key"}
    initial = _sample("paddle_api_latency_seconds_count", labels)

    paddle_api_latency.labels(**labels).observe(0.25)
    paddle_api_latency.labels(**labels).observe(1.2)

    assert _sample("paddle_api_latency_seconds_count", labels) == initial + 2


def test_rejected_webhook_counted_by_kind(alert_fields):
    labels = {"outcome": ErrorKind.configuration_error.value}
    initial = _sample("paddle_webhook_outcomes_total", labels)

    handle_webhook(alert_fields, "1", "", FakeLedger(1))

    assert _sample("paddle_webhook_outcomes_total", labels) == initial + 1


def test_init_metrics_with_app():
    """Test metrics initialization with FastAPI app."""
    mock_app = MagicMock()

    with patch("core.metrics.Instrumentator") as mock_instrumentator:
        mock_inst = MagicMock()
        mock_instrumentator.return_value = mock_inst
        mock_inst.instrument.return_value = mock_inst
        mock_inst.expose.return_value = mock_inst

        result = init_metrics(mock_app)

        mock_instrumentator.assert_called_once()
        mock_inst.instrument.assert_called_with(mock_app)
        mock_inst.expose.assert_called_with(
            mock_app, endpoint="/metrics", include_in_schema=False
        )
        assert result == mock_inst


def test_metrics_endpoint_integration(client):
    """Test that metrics endpoint is available and returns Prometheus format."""
    pay_link_requests.labels(result="success")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers.get("content-type", "")
    assert "paddle_pay_link_requests_total" in response.text
    assert "paddle_webhook_outcomes_total" in response.text


def test_metrics_export():
    result = generate_latest()

    assert isinstance(result, bytes)
    assert b"paddle_api_latency_seconds" in result
