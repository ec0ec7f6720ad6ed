"""
Paddle Vendor API client

Form-encoded POSTs to the Paddle vendor API:
- Generating one-time pay links for orders
- Retrieving the vendor public key used to sign webhooks
"""

import time

import requests
import structlog
import tenacity

from core.logging import PaddleEvents
from core.metrics import paddle_api_latency
from core.tracing import get_tracer

PADDLE_ROOT_URL = "https://vendors.paddle.com/"
API_GENERATE_PAY_LINK_URL = "api/2.0/product/generate_pay_link"
API_GET_PUBLIC_KEY_URL = "api/2.0/user/get_public_key"
API_TIMEOUT = 45.0

log = structlog.get_logger(__name__)
tracer = get_tracer(__name__)


class PaddleError(Exception):
    pass


class PaddleTransportError(PaddleError):
    """The request never produced an HTTP response (timeout, DNS, reset)."""


class PaddleResponseError(PaddleError):
    """Paddle answered, but not with a usable success payload."""

    def __init__(self, message: str, body: str = ""):
        super().__init__(message)
        self.body = body


class PaddleClient:
    def __init__(self, root_url: str = PADDLE_ROOT_URL, timeout: float = API_TIMEOUT):
        self.root_url = root_url.rstrip("/") + "/"
        self.timeout = timeout

    def _post(self, path: str, data: dict[str, str]) -> requests.Response:
        url = self.root_url + path
        started = time.monotonic()
        with tracer.start_as_current_span(f"paddle.{path.rsplit('/', 1)[-1]}"):
            try:
                return requests.post(url, data=data, timeout=self.timeout)
            except requests.RequestException as e:
                # The exception text carries the URL only; the body holds the credentials.
                raise PaddleTransportError(f"{type(e).__name__} calling {url}: {e}") from e
            finally:
                paddle_api_latency.labels(endpoint=path).observe(
                    time.monotonic() - started
                )

    def generate_pay_link(self, form: dict[str, str]) -> requests.Response:
        """Send a pay-link request. Not retried: the shopper resubmits instead."""
        return self._post(API_GENERATE_PAY_LINK_URL, form)

    @tenacity.retry(
        stop=tenacity.stop_after_attempt(3),
        wait=tenacity.wait_exponential(multiplier=0.2, max=2),
        retry=tenacity.retry_if_exception_type(PaddleTransportError),
        reraise=True,
    )
    def get_public_key(self, vendor_id: int, api_key: str) -> str:
        """Fetch the PEM public key Paddle signs this vendor's webhooks with."""
        response = self._post(
            API_GET_PUBLIC_KEY_URL,
            {"vendor_id": str(vendor_id), "vendor_auth_code": api_key},
        )
        try:
            payload = response.json()
        except ValueError:
            raise PaddleResponseError("public key response is not JSON", response.text)

        if not isinstance(payload, dict) or payload.get("success") is not True:
            error = payload.get("error") if isinstance(payload, dict) else None
            raise PaddleResponseError(f"public key request rejected: {error}", response.text)

        body = payload.get("response")
        key = body.get("public_key") if isinstance(body, dict) else None
        if not isinstance(key, str) or not key.strip():
            raise PaddleResponseError("public key missing from response", response.text)

        log.info(PaddleEvents.PUBLIC_KEY_FETCHED, vendor_id=vendor_id)
        return key
