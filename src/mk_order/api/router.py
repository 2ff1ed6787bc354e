"""mk_order REST API — checkout and buyer/seller order actions, all JWT-protected."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, respond
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel
from src.mk_order.application.schemas import CheckoutRequest, CreateOrderRequest
from src.mk_order.application.service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])

_service = OrderService()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    body: CreateOrderRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_order(db, str(current_user.id), body.product_id, body.quantity)
    return respond(request, data.model_dump(mode="json"))


@router.get("/purchases")
async def list_purchases(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status_filter: str | None = Query(None, alias="status", description="Filter by order status"),
    cursor: str | None = Query(None, description="Pagination cursor (order ID)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_purchases(db, str(current_user.id), status_filter, cursor, limit)
    return respond(request, data.model_dump(mode="json"))


@router.get("/sales")
async def list_sales(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status_filter: str | None = Query(None, alias="status", description="Filter by order status"),
    cursor: str | None = Query(None, description="Pagination cursor (order ID)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_sales(db, str(current_user.id), status_filter, cursor, limit)
    return respond(request, data.model_dump(mode="json"))


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_order(
        db, order_id, str(current_user.id), is_admin=current_user.is_admin
    )
    return respond(request, data.model_dump(mode="json"))


@router.post("/{order_id}/checkout")
async def checkout(
    order_id: str,
    body: CheckoutRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    payer_email = body.payer_email or current_user.email
    data = await _service.create_checkout(db, order_id, str(current_user.id), payer_email)
    return respond(request, data.model_dump(mode="json"))


@router.post("/{order_id}/complete")
async def complete_order(
    order_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.complete_order(db, order_id, str(current_user.id))
    return respond(request, data.model_dump(mode="json"))


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.cancel_order(db, order_id, str(current_user.id))
    return respond(request, data.model_dump(mode="json"))
