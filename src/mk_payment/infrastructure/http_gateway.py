"""HTTP payment gateway client (Mercado Pago style checkout preferences).

Two narrow calls live here: create a checkout intent, and read back a
payment when the webhook says it changed.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from config.settings import settings
from src.mk_common.errors import PaymentGatewayError
from src.mk_order.domain.models import Order
from src.mk_payment.domain.gateway import GatewayPayment, PaymentIntent

logger = logging.getLogger(__name__)


def build_async_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.PAYMENT_GATEWAY_BASE_URL,
        timeout=httpx.Timeout(settings.HTTP_TIMEOUT_SECONDS),
        headers={
            "Authorization": f"Bearer {settings.PAYMENT_GATEWAY_ACCESS_TOKEN}",
            "User-Agent": f"{settings.APP_NAME}/1.0",
        },
    )


def _preference_body(order: Order, amount: int, payer_email: str | None) -> dict[str, Any]:
    # Single line item carrying the whole frozen total; unit price in major units
    body: dict[str, Any] = {
        "items": [
            {
                "id": order.product_id,
                "title": f"Order {order.id}",
                "quantity": 1,
                "unit_price": amount / 100,
                "currency_id": settings.PAYMENT_CURRENCY,
            }
        ],
        "external_reference": order.id,
        "payment_methods": {"installments": 1, "default_payment_method_id": "pix"},
    }
    if payer_email:
        body["payer"] = {"email": payer_email}
    return body


def _to_cents(value: Any) -> int:
    """Gateway amounts are decimal major units: 100.5 -> 10050."""
    try:
        cents = Decimal(str(value)) * 100
    except (InvalidOperation, ValueError) as exc:
        raise PaymentGatewayError(f"unreadable amount {value!r}") from exc
    if cents != cents.to_integral_value():
        raise PaymentGatewayError(f"amount {value!r} has fractional cents")
    return int(cents)


class HttpPaymentGateway:
    def __init__(self, client_factory: Any = build_async_client) -> None:
        self._client_factory = client_factory

    async def _call(self, method: str, path: str, what: str, **kwargs: Any) -> dict[str, Any]:
        try:
            async with self._client_factory() as client:
                resp = await client.request(method, path, **kwargs)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Gateway rejected request: %s status=%d", what, exc.response.status_code
            )
            raise PaymentGatewayError(f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.error("Gateway unreachable: %s err=%s", what, exc)
            raise PaymentGatewayError(type(exc).__name__) from exc

    async def create_intent(
        self, order: Order, amount: int, payer_email: str | None
    ) -> PaymentIntent:
        data = await self._call(
            "POST",
            "/checkout/preferences",
            f"intent order={order.id}",
            json=_preference_body(order, amount, payer_email),
        )
        reference = data.get("id")
        if not reference:
            raise PaymentGatewayError("response has no preference id")
        logger.info("Payment intent created: order=%s ref=%s", order.id, reference)
        return PaymentIntent(reference=str(reference), checkout_url=data.get("init_point"))

    async def get_payment(self, payment_id: str) -> GatewayPayment:
        data = await self._call("GET", f"/v1/payments/{payment_id}", f"payment={payment_id}")
        if not data.get("status") or data.get("transaction_amount") is None:
            raise PaymentGatewayError(f"payment {payment_id} has no status or amount")
        reference = data.get("external_reference")
        return GatewayPayment(
            payment_id=str(data.get("id", payment_id)),
            external_reference=str(reference) if reference else None,
            status=str(data["status"]).lower(),
            amount=_to_cents(data["transaction_amount"]),
            currency=str(data.get("currency_id") or ""),
        )
