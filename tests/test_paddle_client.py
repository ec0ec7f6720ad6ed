"""
Tests for the Paddle vendor API client.
"""

from unittest.mock import patch

import pytest
import requests

from payments.paddle_client import (
    PaddleClient,
    PaddleResponseError,
    PaddleTransportError,
)
from tests.helpers import MockResponse, public_key_ok

ROOT = "https://vendors.paddle.test/"
PEM = "-----BEGIN PUBLIC KEY-----\nMIIB\n-----END PUBLIC KEY-----\n"


def test_root_url_gets_trailing_slash():
    assert PaddleClient(root_url="https://vendors.paddle.test").root_url == ROOT


@patch("payments.paddle_client.requests.post")
def test_get_public_key_success(mock_post):
    mock_post.return_value = public_key_ok(PEM)

    key = PaddleClient(root_url=ROOT, timeout=5.0).get_public_key(1234, "api-key")

    assert key == PEM
    mock_post.assert_called_once_with(
        ROOT + "api/2.0/user/get_public_key",
        data={"vendor_id": "1234", "vendor_auth_code": "api-key"},
        timeout=5.0,
    )


@patch("payments.paddle_client.requests.post")
def test_get_public_key_rejected(mock_post):
    mock_post.return_value = MockResponse(
        200, {"success": False, "error": {"code": 107, "message": "no access"}}
    )

    with pytest.raises(PaddleResponseError) as exc_info:
        PaddleClient(root_url=ROOT).get_public_key(1234, "api-key")

    assert "no access" in str(exc_info.value)
    assert mock_post.call_count == 1


@patch("payments.paddle_client.requests.post")
def test_get_public_key_missing_key(mock_post):
    mock_post.return_value = MockResponse(200, {"success": True, "response": []})

    with pytest.raises(PaddleResponseError):
        PaddleClient(root_url=ROOT).get_public_key(1234, "api-key")


@patch("payments.paddle_client.requests.post")
def test_get_public_key_not_json(mock_post):
    mock_post.return_value = MockResponse(500, text="Internal Server Error")

    with pytest.raises(PaddleResponseError) as exc_info:
        PaddleClient(root_url=ROOT).get_public_key(1234, "api-key")

    assert exc_info.value.body == "Internal Server Error"


@pytest.mark.slow
@patch("payments.paddle_client.requests.post")
def test_get_public_key_retries_transport_errors(mock_post):
    mock_post.side_effect = requests.ConnectionError("connection refused")

    with pytest.raises(PaddleTransportError):
        PaddleClient(root_url=ROOT).get_public_key(1234, "api-key")

    assert mock_post.call_count == 3


@patch("payments.paddle_client.requests.post")
def test_get_public_key_recovers_after_transport_error(mock_post):
    mock_post.side_effect = [requests.Timeout("timed out"), public_key_ok(PEM)]

    key = PaddleClient(root_url=ROOT).get_public_key(1234, "api-key")

    assert key == PEM
    assert mock_post.call_count == 2


@patch("payments.paddle_client.requests.post")
def test_transport_error_message_omits_credentials(mock_post):
    mock_post.side_effect = requests.ConnectionError("connection refused")

    with pytest.raises(PaddleTransportError) as exc_info:
        PaddleClient(root_url=ROOT).generate_pay_link(
            {"vendor_id": "1234", "vendor_auth_code": "secret-api-key-abcd"}
        )

    assert "secret-api-key-abcd" not in str(exc_info.value)
    assert ROOT + "api/2.0/product/generate_pay_link" in str(exc_info.value)
