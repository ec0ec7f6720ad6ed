"""
Pay-link requests

Builds the generate_pay_link request for an order, sends it through the
PaddleClient and maps whatever comes back to a PayLinkResult.
"""

import base64
import json
import time
from decimal import Decimal
from urllib.parse import urlencode

import structlog

from core.logging import PaddleEvents
from core.metrics import pay_link_requests
from payments.paddle_client import PaddleClient, PaddleTransportError
from payments.types import (
    Customer,
    ErrorKind,
    GatewaySettings,
    OrderDetails,
    PayLinkFailure,
    PayLinkRequest,
    PayLinkResult,
    PayLinkSuccess,
    VendorCredentials,
)

log = structlog.get_logger(__name__)

TRANSPORT_ERROR_MESSAGE = "Something went wrong. Unable to get API response."
INTEGRATION_ERROR_MESSAGE = (
    "Something went wrong. Check if Paddle account is properly integrated."
)
ORDER_TITLE_PLACEHOLDER = "{#order}"
WEBHOOK_PATH = "/api/v1/webhook/paddle"


def payable_total(order: OrderDetails, settings: GatewaySettings) -> Decimal:
    if settings.vat_included_in_price:
        return order.total
    return order.total - order.tax


def format_price(currency: str, amount: Decimal) -> str:
    return f"{currency}:{amount:.2f}"


def unique_names(order: OrderDetails) -> list[str]:
    """Line-item names without repeats, first occurrence wins."""
    return list(dict.fromkeys(item.name for item in order.line_items))


def build_passthrough(order: OrderDetails) -> str:
    """One entry per line item (repeats kept), echoed back untouched on the webhook."""
    entries = [
        {"products": {"id": item.product_id, "name": item.name}}
        for item in order.line_items
    ]
    raw = json.dumps(entries, separators=(",", ":"))
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_passthrough(passthrough: str) -> list[dict]:
    return json.loads(base64.b64decode(passthrough, validate=True))


class PaymentLinkRequester:
    """Mints one-time Paddle checkout URLs for orders."""

    def __init__(self, client: PaddleClient, site_url: str, force_ssl: bool = False):
        self.client = client
        self.site_url = site_url.rstrip("/")
        self.force_ssl = force_ssl

    def return_url(self, order: OrderDetails) -> str:
        url = f"{self.site_url}/checkout/order-received/{order.id}/?" + urlencode(
            {"key": order.order_key}
        )
        if self.force_ssl:
            url = url.replace("http:", "https:")
        return url

    def webhook_url(self, order_id: int) -> str:
        return f"{self.site_url}{WEBHOOK_PATH}?" + urlencode({"order_id": order_id})

    def build_request(
        self,
        order: OrderDetails,
        customer: Customer,
        credentials: VendorCredentials,
        settings: GatewaySettings,
    ) -> PayLinkRequest:
        title = settings.product_name.replace(ORDER_TITLE_PLACEHOLDER, str(order.id))
        custom_message = None
        passthrough = None
        if settings.send_product_names:
            title = custom_message = ", ".join(unique_names(order))
            passthrough = build_passthrough(order)

        return PayLinkRequest(
            vendor_id=credentials.vendor_id,
            api_key=credentials.api_key,
            prices=(format_price(settings.currency, payable_total(order, settings)),),
            order_id=order.id,
            return_url=self.return_url(order),
            webhook_url=self.webhook_url(order.id),
            customer_email=order.billing_email,
            customer_country=customer.billing_country,
            customer_postcode=customer.billing_postcode,
            title=title,
            image_url=settings.product_icon,
            custom_message=custom_message,
            passthrough=passthrough,
        )

    def request_pay_link(
        self,
        order: OrderDetails,
        customer: Customer,
        credentials: VendorCredentials,
        settings: GatewaySettings,
    ) -> PayLinkResult:
        request = self.build_request(order, customer, credentials, settings)
        log.info(
            PaddleEvents.PAY_LINK_REQUESTED,
            order_id=order.id,
            vendor_id=credentials.vendor_id,
            prices=list(request.prices),
        )

        started = time.monotonic()
        try:
            response = self.client.generate_pay_link(request.to_form())
        except PaddleTransportError as e:
            return self._failure(
                order.id, ErrorKind.transport_error, TRANSPORT_ERROR_MESSAGE, str(e)
            )
        duration = time.monotonic() - started

        result = self._parse(order, customer, response.text, duration)
        if isinstance(result, PayLinkSuccess):
            pay_link_requests.labels(result="success").inc()
            log.info(
                PaddleEvents.PAY_LINK_CREATED,
                order_id=order.id,
                duration_s=round(duration, 3),
            )
        return result

    def _parse(
        self, order: OrderDetails, customer: Customer, body: str, duration: float
    ) -> PayLinkResult:
        try:
            payload = json.loads(body)
        except ValueError:
            return self._failure(
                order.id,
                ErrorKind.malformed_response,
                INTEGRATION_ERROR_MESSAGE,
                "response is not JSON",
                body=body,
            )

        success = payload.get("success") if isinstance(payload, dict) else None
        if success is True:
            inner = payload.get("response")
            url = inner.get("url") if isinstance(inner, dict) else None
            if isinstance(url, str) and url:
                return PayLinkSuccess(
                    checkout_url=url,
                    email=order.billing_email,
                    country=customer.billing_country,
                    postcode=customer.billing_postcode,
                    order_id=order.id,
                    duration_s=duration,
                )
            detail = "success response without response.url"
            kind = ErrorKind.malformed_response
        elif success is False:
            detail = f"Paddle error: {payload.get('error')}"
            kind = ErrorKind.provider_rejection
        else:
            detail = "unexpected response shape"
            kind = ErrorKind.malformed_response

        return self._failure(order.id, kind, INTEGRATION_ERROR_MESSAGE, detail, body=body)

    @staticmethod
    def _failure(
        order_id: int, kind: ErrorKind, message: str, detail: str, body: str | None = None
    ) -> PayLinkFailure:
        pay_link_requests.labels(result=kind.value).inc()
        log.error(
            PaddleEvents.PAY_LINK_FAILED,
            order_id=order_id,
            kind=kind.value,
            detail=detail,
            response_body=body,
        )
        return PayLinkFailure(kind=kind, error_messages=(message,), detail=detail)
