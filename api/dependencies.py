"""FastAPI dependencies shared by the checkout and webhook routes."""

from fastapi import Depends
from sqlalchemy.orm import Session

from core.dependencies import get_settings
from core.settings import Settings
from db.ledger import OrderLedger
from db.session import get_db
from payments.config_store import ConfigStore
from payments.paddle_client import PaddleClient
from payments.paylink import PaymentLinkRequester


def get_paddle_client(settings: Settings = Depends(get_settings)) -> PaddleClient:
    return PaddleClient(
        root_url=settings.PADDLE_ROOT_URL, timeout=settings.PADDLE_API_TIMEOUT
    )


def get_config_store(db: Session = Depends(get_db)) -> ConfigStore:
    return ConfigStore(db)


def get_ledger(db: Session = Depends(get_db)) -> OrderLedger:
    return OrderLedger(db)


def get_pay_link_requester(
    client: PaddleClient = Depends(get_paddle_client),
    settings: Settings = Depends(get_settings),
) -> PaymentLinkRequester:
    return PaymentLinkRequester(
        client, site_url=settings.SITE_URL, force_ssl=settings.FORCE_SSL_CHECKOUT
    )
