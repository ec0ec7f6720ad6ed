"""
API Schemas Module

This module defines Pydantic models for request/response validation.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from payments.types import PayLinkFailure, PayLinkResult


class CustomerIn(BaseModel):
    """Billing details of the shopper placing the order."""

    billing_country: Optional[str] = Field(default=None, max_length=2)
    billing_postcode: Optional[str] = None


class CheckoutResponse(BaseModel):
    """Result consumed by the overlay bootstrap script."""

    result: Literal["success", "failure"]
    order_id: Optional[int] = None
    checkout_url: Optional[str] = None
    email: Optional[str] = None
    country: Optional[str] = None
    postcode: Optional[str] = None
    duration_s: Optional[float] = None
    errors: Optional[list[str]] = None

    @classmethod
    def from_result(cls, result: PayLinkResult) -> "CheckoutResponse":
        if isinstance(result, PayLinkFailure):
            return cls.failure(list(result.error_messages))
        return cls(
            result="success",
            order_id=result.order_id,
            checkout_url=result.checkout_url,
            email=result.email,
            country=result.country,
            postcode=result.postcode,
            duration_s=result.duration_s,
        )

    @classmethod
    def failure(cls, errors: list[str]) -> "CheckoutResponse":
        return cls(result="failure", errors=errors)


class GatewaySettingsUpdate(BaseModel):
    """Partial update of the gateway options; omitted fields are left alone."""

    enabled: Optional[bool] = None
    title: Optional[str] = None
    description: Optional[str] = None
    paddle_vendor_id: Optional[int] = Field(default=None, gt=0)
    paddle_api_key: Optional[str] = None
    product_name: Optional[str] = None
    product_icon: Optional[str] = None
    send_names: Optional[bool] = None
    vat_included_in_price: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")

    def to_options(self) -> dict[str, str]:
        options = {}
        for key, value in self.model_dump(exclude_none=True).items():
            if isinstance(value, bool):
                value = "yes" if value else "no"
            options[key] = str(value)
        return options


class GatewaySettingsOut(BaseModel):
    settings: dict[str, str]
    currency: str
    currency_supported: bool
    is_connected: bool
    is_available: bool
