"""
Gateway option store

Options live in the ``options`` table as string key/value rows. Readers get
immutable snapshots (VendorCredentials, GatewaySettings) to pass along
explicitly.
"""

import structlog
from sqlalchemy.orm import Session

from core.logging import PaddleEvents
from db.models import Option
from payments.paddle_client import PaddleClient, PaddleError
from payments.types import (
    DEFAULT_PRODUCT_ICON,
    SUPPORTED_CURRENCIES,
    GatewaySettings,
    VendorCredentials,
)

log = structlog.get_logger(__name__)

VENDOR_ID = "paddle_vendor_id"
API_KEY = "paddle_api_key"
PUBLIC_KEY = "paddle_vendor_public_key"

# Changing either of these means the cached public key may belong to another vendor.
CREDENTIAL_KEYS = frozenset({VENDOR_ID, API_KEY})

DEFAULTS = {
    "enabled": "no",
    "title": "Paddle",
    "description": "Pay using Visa, Mastercard, Amex or PayPal via Paddle",
    VENDOR_ID: "",
    API_KEY: "",
    "product_name": "",
    "product_icon": DEFAULT_PRODUCT_ICON,
    "send_names": "no",
    "vat_included_in_price": "yes",
}


def _yes(value: str | None) -> bool:
    return (value or "").strip().lower() == "yes"


class ConfigStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str, default: str | None = None) -> str | None:
        option = self.db.get(Option, key)
        if option is not None:
            return option.value
        if default is not None:
            return default
        return DEFAULTS.get(key)

    def set(self, key: str, value: str) -> None:
        self.update({key: value})

    def update(self, values: dict[str, str]) -> None:
        """Write several options at once, dropping the cached key if credentials move."""
        invalidate = False
        for key, value in values.items():
            value = "" if value is None else str(value)
            if key in CREDENTIAL_KEYS and self.get(key, "") != value:
                invalidate = True
            self._write(key, value)
        if invalidate:
            self._write(PUBLIC_KEY, "")
            log.info(PaddleEvents.PUBLIC_KEY_INVALIDATED)
        self.db.commit()

    def _write(self, key: str, value: str) -> None:
        option = self.db.get(Option, key)
        if option is None:
            self.db.add(Option(key=key, value=value))
        else:
            option.value = value

    def all(self) -> dict[str, str]:
        values = dict(DEFAULTS)
        values.update({o.key: o.value for o in self.db.query(Option).all()})
        values.pop(PUBLIC_KEY, None)
        return values

    def credentials(self) -> VendorCredentials:
        raw_id = (self.get(VENDOR_ID, "") or "").strip()
        return VendorCredentials(
            vendor_id=int(raw_id) if raw_id.isdigit() else None,
            api_key=(self.get(API_KEY, "") or "").strip(),
            public_key=self.get(PUBLIC_KEY, "") or None,
        )

    def gateway_settings(self, currency: str, site_name: str) -> GatewaySettings:
        return GatewaySettings(
            enabled=_yes(self.get("enabled")),
            vat_included_in_price=_yes(self.get("vat_included_in_price")),
            send_product_names=_yes(self.get("send_names")),
            product_name=self.get("product_name") or f"{site_name} Checkout",
            product_icon=self.get("product_icon") or DEFAULT_PRODUCT_ICON,
            currency=currency,
            supported_currencies=SUPPORTED_CURRENCIES,
        )

    def get_vendor_public_key(self, client: PaddleClient) -> str:
        """Cached vendor public key, fetched from Paddle on first use.

        Returns "" when the key cannot be had, so verification fails closed.
        """
        key = self.get(PUBLIC_KEY, "") or ""
        if key:
            return key

        credentials = self.credentials()
        if not credentials.is_connected:
            return ""

        try:
            key = client.get_public_key(credentials.vendor_id, credentials.api_key)
        except PaddleError as e:
            log.error(
                PaddleEvents.PUBLIC_KEY_FETCH_FAILED,
                vendor_id=credentials.vendor_id,
                error=str(e),
                response_body=getattr(e, "body", None),
            )
            return ""

        self._write(PUBLIC_KEY, key)
        self.db.commit()
        return key
