"""
Shared data types for the Paddle checkout integration.

Results are tagged values rather than exceptions: every failure carries a
machine-readable ``ErrorKind``, a list of shopper-safe messages and an
operator-only ``detail``.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Iterable, Mapping


class ErrorKind(str, Enum):
    transport_error = "transport_error"
    provider_rejection = "provider_rejection"
    malformed_response = "malformed_response"
    configuration_error = "configuration_error"
    signature_invalid = "signature_invalid"
    input_malformed = "input_malformed"
    order_not_found = "order_not_found"


class VerificationOutcome(str, Enum):
    verified = "verified"
    unverified = "unverified"
    configuration_error = "configuration_error"


@dataclass(frozen=True)
class VendorCredentials:
    vendor_id: int | None
    api_key: str
    public_key: str | None = None

    @property
    def is_connected(self) -> bool:
        return bool(self.vendor_id) and bool(self.api_key)


@dataclass(frozen=True)
class LineItem:
    product_id: int
    name: str


@dataclass(frozen=True)
class OrderDetails:
    """Read-only snapshot of an order, as handed out by the ledger."""

    id: int
    total: Decimal
    tax: Decimal
    billing_email: str
    billing_country: str = ""
    billing_postcode: str = ""
    order_key: str = ""
    status: str = "pending"
    line_items: tuple[LineItem, ...] = ()


@dataclass(frozen=True)
class Customer:
    billing_country: str = ""
    billing_postcode: str = ""


DEFAULT_PRODUCT_ICON = "https://s3.amazonaws.com/paddle/default/default_product_icon.png"
SUPPORTED_CURRENCIES = ("USD", "GBP", "EUR")


@dataclass(frozen=True)
class GatewaySettings:
    """Checkout flags threaded explicitly into the pay-link requester."""

    enabled: bool = False
    vat_included_in_price: bool = True
    send_product_names: bool = False
    product_name: str = "Checkout"
    product_icon: str = DEFAULT_PRODUCT_ICON
    currency: str = "USD"
    supported_currencies: tuple[str, ...] = SUPPORTED_CURRENCIES

    @property
    def currency_supported(self) -> bool:
        return self.currency in self.supported_currencies

    def is_available(self, credentials: VendorCredentials) -> bool:
        return self.enabled and self.currency_supported and credentials.is_connected


@dataclass(frozen=True)
class PayLinkRequest:
    vendor_id: int
    api_key: str
    prices: tuple[str, ...]
    order_id: int
    return_url: str
    webhook_url: str
    customer_email: str
    customer_country: str
    customer_postcode: str
    title: str
    image_url: str
    custom_message: str | None = None
    passthrough: str | None = None

    def to_form(self) -> dict[str, str]:
        """Form body in the layout the generate_pay_link endpoint expects."""
        form = {
            "vendor_id": str(self.vendor_id),
            "vendor_auth_code": self.api_key,
            "return_url": self.return_url,
            "title": self.title,
            "image_url": self.image_url,
            "webhook_url": self.webhook_url,
            "discountable": "0",
            "quantity_variable": "0",
            "customer_email": self.customer_email,
            "customer_postcode": self.customer_postcode,
            "customer_country": self.customer_country,
        }
        for i, price in enumerate(self.prices):
            form[f"prices[{i}]"] = price
        if self.custom_message is not None:
            form["custom_message"] = self.custom_message
        if self.passthrough is not None:
            form["passthrough"] = self.passthrough
        return form


@dataclass(frozen=True)
class PayLinkSuccess:
    checkout_url: str
    email: str
    country: str
    postcode: str
    order_id: int
    duration_s: float = 0.0


@dataclass(frozen=True)
class PayLinkFailure:
    kind: ErrorKind
    error_messages: tuple[str, ...]
    detail: str = ""


PayLinkResult = PayLinkSuccess | PayLinkFailure


@dataclass(frozen=True)
class WebhookNotification:
    fields: dict[str, str]
    signature: str | None = None

    SIGNATURE_FIELD = "p_signature"

    @classmethod
    def from_form(
        cls, items: Mapping[str, str] | Iterable[tuple[str, str]]
    ) -> "WebhookNotification":
        """Split posted form fields into the signed fields and the signature.

        Repeated keys keep their last value.
        """
        pairs = items.items() if isinstance(items, Mapping) else items
        fields: dict[str, str] = {}
        for key, value in pairs:
            fields[str(key)] = str(value)
        signature = fields.pop(cls.SIGNATURE_FIELD, None)
        return cls(fields=fields, signature=signature)


@dataclass(frozen=True)
class PaymentConfirmation:
    accepted: bool
    status_code: int
    kind: ErrorKind | None = None
    detail: str = ""
    order_id: int | None = None
    changed: bool = field(default=False, compare=False)
