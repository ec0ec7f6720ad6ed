"""
Webhook handlers for payment providers
"""

from fastapi import APIRouter, Depends, Request, Response
from starlette.concurrency import run_in_threadpool

from api.dependencies import get_config_store, get_ledger, get_paddle_client
from db.ledger import OrderLedger
from payments.config_store import ConfigStore
from payments.paddle_client import PaddleClient
from payments.webhook import handle_webhook

router = APIRouter()


@router.post("/webhook/paddle")
async def paddle_webhook(
    request: Request,
    order_id: str | None = None,
    store: ConfigStore = Depends(get_config_store),
    ledger: OrderLedger = Depends(get_ledger),
    client: PaddleClient = Depends(get_paddle_client),
):
    """Payment-completion alert from Paddle.

    Answers an empty 200 once the order is marked paid, 500 otherwise so
    Paddle retries the delivery.
    """
    form = await request.form()
    fields = [(key, str(value)) for key, value in form.multi_items()]

    vendor_public_key = await run_in_threadpool(store.get_vendor_public_key, client)
    confirmation = await run_in_threadpool(
        handle_webhook, fields, order_id, vendor_public_key, ledger
    )
    return Response(status_code=confirmation.status_code)
