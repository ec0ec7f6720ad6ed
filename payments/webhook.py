"""
Paddle webhook verification and payment confirmation.

A completion alert goes through ConfigCheck -> SignatureCheck -> OrderIdCheck
and ends Confirmed (HTTP 200) or Rejected (HTTP 500). Nothing is retried here;
Paddle redelivers alerts that did not get a 200.
"""

import base64
import binascii
import dataclasses
import re
from dataclasses import dataclass
from typing import Iterable, Mapping, Protocol

import structlog
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from core.logging import PaddleEvents
from core.metrics import webhook_outcomes
from payments.canonical import canonicalize
from payments.types import (
    ErrorKind,
    OrderDetails,
    PaymentConfirmation,
    VerificationOutcome,
    WebhookNotification,
)

log = structlog.get_logger(__name__)

ORDER_ID_PATTERN = re.compile(r"[1-9][0-9]*")


class OrderLedger(Protocol):
    def get_order(self, order_id: int) -> OrderDetails | None: ...

    def mark_paid(self, order_id: int) -> bool: ...


@dataclass(frozen=True)
class SignatureCheck:
    outcome: VerificationOutcome
    kind: ErrorKind | None = None
    detail: str = ""


def check_signature(
    notification: WebhookNotification, vendor_public_key: str | None
) -> SignatureCheck:
    """Verify the alert's signature and say why it failed when it does."""
    if not vendor_public_key or not vendor_public_key.strip():
        return SignatureCheck(
            VerificationOutcome.configuration_error,
            ErrorKind.configuration_error,
            "vendor public key is not set",
        )

    if not notification.signature:
        return SignatureCheck(
            VerificationOutcome.unverified,
            ErrorKind.input_malformed,
            "p_signature missing",
        )
    try:
        signature = base64.b64decode(notification.signature, validate=True)
    except (binascii.Error, ValueError):
        return SignatureCheck(
            VerificationOutcome.unverified,
            ErrorKind.input_malformed,
            "p_signature is not valid base64",
        )

    try:
        public_key = serialization.load_pem_public_key(vendor_public_key.encode())
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        return SignatureCheck(
            VerificationOutcome.unverified,
            ErrorKind.configuration_error,
            f"vendor public key unusable: {e}",
        )
    if not isinstance(public_key, rsa.RSAPublicKey):
        return SignatureCheck(
            VerificationOutcome.unverified,
            ErrorKind.configuration_error,
            "vendor public key is not an RSA key",
        )

    try:
        public_key.verify(
            signature,
            canonicalize(notification.fields),
            padding.PKCS1v15(),
            hashes.SHA1(),
        )
    except InvalidSignature:
        return SignatureCheck(
            VerificationOutcome.unverified,
            ErrorKind.signature_invalid,
            "signature does not match payload",
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        return SignatureCheck(
            VerificationOutcome.unverified,
            ErrorKind.signature_invalid,
            f"verification failed: {e}",
        )
    return SignatureCheck(VerificationOutcome.verified)


def verify(
    notification: WebhookNotification, vendor_public_key: str | None
) -> VerificationOutcome:
    return check_signature(notification, vendor_public_key).outcome


def parse_order_id(order_id: str | None) -> int | None:
    """Positive integer whose decimal form is exactly the given string."""
    if order_id is None or not ORDER_ID_PATTERN.fullmatch(order_id):
        return None
    return int(order_id)


def confirm_payment(
    order_id: str | None, outcome: VerificationOutcome, ledger: OrderLedger
) -> PaymentConfirmation:
    """Mark the order paid only for a verified alert about an existing order.

    An already-paid order is accepted again without being touched.
    """
    if outcome is VerificationOutcome.configuration_error:
        return PaymentConfirmation(
            False, 500, ErrorKind.configuration_error, "vendor public key is not set"
        )
    if outcome is not VerificationOutcome.verified:
        return PaymentConfirmation(
            False, 500, ErrorKind.signature_invalid, "bad signature"
        )

    parsed = parse_order_id(order_id)
    if parsed is None:
        return PaymentConfirmation(
            False,
            500,
            ErrorKind.input_malformed,
            f"order_id is not an integer: {order_id!r}",
        )

    if ledger.get_order(parsed) is None:
        return PaymentConfirmation(
            False,
            500,
            ErrorKind.order_not_found,
            f"order {parsed} does not exist",
            order_id=parsed,
        )

    changed = ledger.mark_paid(parsed)
    return PaymentConfirmation(True, 200, order_id=parsed, changed=changed)


def handle_webhook(
    form_items: Mapping[str, str] | Iterable[tuple[str, str]],
    order_id: str | None,
    vendor_public_key: str | None,
    ledger: OrderLedger,
) -> PaymentConfirmation:
    notification = WebhookNotification.from_form(form_items)
    log.info(
        PaddleEvents.WEBHOOK_RECEIVED,
        order_id=order_id,
        alert_name=notification.fields.get("alert_name"),
    )

    check = check_signature(notification, vendor_public_key)
    confirmation = confirm_payment(order_id, check.outcome, ledger)

    if not confirmation.accepted and check.kind is not None:
        confirmation = dataclasses.replace(
            confirmation, kind=check.kind, detail=check.detail
        )

    if confirmation.accepted:
        webhook_outcomes.labels(outcome="confirmed").inc()
        log.info(
            PaddleEvents.WEBHOOK_CONFIRMED,
            order_id=confirmation.order_id,
            newly_paid=confirmation.changed,
        )
    else:
        webhook_outcomes.labels(outcome=confirmation.kind.value).inc()
        log_method = (
            log.error
            if confirmation.kind is ErrorKind.configuration_error
            else log.warning
        )
        log_method(
            PaddleEvents.WEBHOOK_REJECTED,
            order_id=order_id,
            kind=confirmation.kind.value,
            detail=confirmation.detail,
        )
    return confirmation
