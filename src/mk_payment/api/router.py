"""Payment gateway webhook.

Authenticated with a shared token. The body only names a payment; its
status and amount are read back from the gateway by PaymentService.
"""

import hmac
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mk_common.database import get_db_session
from src.mk_common.errors import InvalidWebhookTokenError
from src.mk_common.response import ApiResponse, respond
from src.mk_payment.application.schemas import PaymentWebhook
from src.mk_payment.application.service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])

_service = PaymentService()


def verify_webhook_token(
    x_webhook_token: Annotated[str | None, Header()] = None,
) -> None:
    expected = settings.PAYMENT_WEBHOOK_TOKEN
    if not expected or not x_webhook_token:
        raise InvalidWebhookTokenError()
    if not hmac.compare_digest(x_webhook_token.encode(), expected.encode()):
        raise InvalidWebhookTokenError()


@router.post("/webhook", dependencies=[Depends(verify_webhook_token)])
async def payment_webhook(
    body: PaymentWebhook,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.handle_notification(db, body.payment_id)
    return respond(request, data.model_dump(mode="json"))
