"""
API Routes Module

This module defines FastAPI routes for:
- Requesting a Paddle checkout URL for an order
- Reading and updating the gateway options
"""

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, status

from api import schemas
from api.dependencies import (
    get_config_store,
    get_ledger,
    get_pay_link_requester,
)
from core.dependencies import get_settings
from core.logging import PaddleEvents
from core.settings import Settings
from db.ledger import OrderLedger
from payments.config_store import API_KEY, ConfigStore
from payments.paylink import PaymentLinkRequester
from payments.types import Customer

log = structlog.get_logger(__name__)

router = APIRouter()

UNAVAILABLE_MESSAGE = "We were unable to process your order, please try again."


@router.post(
    "/orders/{order_id}/checkout",
    response_model=schemas.CheckoutResponse,
    response_model_exclude_none=True,
)
def checkout_order(
    order_id: int,
    customer: schemas.CustomerIn | None = Body(default=None),
    ledger: OrderLedger = Depends(get_ledger),
    store: ConfigStore = Depends(get_config_store),
    requester: PaymentLinkRequester = Depends(get_pay_link_requester),
    settings: Settings = Depends(get_settings),
):
    """Mint a Paddle pay link for an existing order awaiting payment."""
    order = ledger.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.status == "paid":
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Order {order_id} is already paid",
        )

    credentials = store.credentials()
    gateway = store.gateway_settings(settings.STORE_CURRENCY, settings.SITE_NAME)
    if not gateway.is_available(credentials):
        log.warning(
            "checkout.gateway_unavailable",
            order_id=order_id,
            enabled=gateway.enabled,
            currency=gateway.currency,
            is_connected=credentials.is_connected,
        )
        return schemas.CheckoutResponse.failure([UNAVAILABLE_MESSAGE])

    shopper = Customer(
        billing_country=(customer and customer.billing_country)
        or order.billing_country,
        billing_postcode=(customer and customer.billing_postcode)
        or order.billing_postcode,
    )
    result = requester.request_pay_link(order, shopper, credentials, gateway)
    return schemas.CheckoutResponse.from_result(result)


def mask_secret(value: str) -> str:
    """Last four characters of long secrets, nothing of short ones."""
    if len(value) > 8:
        return "****" + value[-4:]
    return "*" * len(value)


def _settings_view(store: ConfigStore, settings: Settings) -> schemas.GatewaySettingsOut:
    values = store.all()
    if values.get(API_KEY):
        values[API_KEY] = mask_secret(values[API_KEY])
    credentials = store.credentials()
    gateway = store.gateway_settings(settings.STORE_CURRENCY, settings.SITE_NAME)
    return schemas.GatewaySettingsOut(
        settings=values,
        currency=gateway.currency,
        currency_supported=gateway.currency_supported,
        is_connected=credentials.is_connected,
        is_available=gateway.is_available(credentials),
    )


@router.get("/gateway/settings", response_model=schemas.GatewaySettingsOut)
def read_gateway_settings(
    store: ConfigStore = Depends(get_config_store),
    settings: Settings = Depends(get_settings),
):
    return _settings_view(store, settings)


@router.put("/gateway/settings", response_model=schemas.GatewaySettingsOut)
def update_gateway_settings(
    update: schemas.GatewaySettingsUpdate,
    store: ConfigStore = Depends(get_config_store),
    settings: Settings = Depends(get_settings),
):
    """Save gateway options. New vendor credentials drop the cached public key."""
    options = update.to_options()
    store.update(options)
    log.info(PaddleEvents.SETTINGS_UPDATED, keys=sorted(options))
    return _settings_view(store, settings)
