"""mk_dispute REST API — buyer/seller side of a dispute. Admin actions live in mk_admin."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, respond
from src.mk_dispute.application.schemas import DisputeMessageRequest, OpenDisputeRequest
from src.mk_dispute.application.service import DisputeService
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel

router = APIRouter(prefix="/disputes", tags=["disputes"])

_service = DisputeService()


@router.post("", status_code=status.HTTP_201_CREATED)
async def open_dispute(
    body: OpenDisputeRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.open_dispute(
        db, str(current_user.id), body.order_id, body.reason.value, body.description
    )
    return respond(request, data.model_dump(mode="json"))


@router.get("")
async def list_my_disputes(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status_filter: str | None = Query(None, alias="status", description="Filter by dispute status"),
    cursor: str | None = Query(None, description="Pagination cursor (dispute ID)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_my_disputes(db, str(current_user.id), status_filter, cursor, limit)
    return respond(request, data.model_dump(mode="json"))


@router.get("/{dispute_id}")
async def get_dispute(
    dispute_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_dispute(
        db, dispute_id, str(current_user.id), is_admin=current_user.is_admin
    )
    return respond(request, data.model_dump(mode="json"))


@router.post("/{dispute_id}/withdraw")
async def withdraw_dispute(
    dispute_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.withdraw_dispute(db, dispute_id, str(current_user.id))
    return respond(request, data.model_dump(mode="json"))


@router.post("/{dispute_id}/messages", status_code=status.HTTP_201_CREATED)
async def add_message(
    dispute_id: str,
    body: DisputeMessageRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.add_message(
        db, dispute_id, str(current_user.id), current_user.is_admin, body.message
    )
    return respond(request, data.model_dump(mode="json"))


@router.get("/{dispute_id}/messages")
async def list_messages(
    dispute_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    messages = await _service.list_messages(
        db, dispute_id, str(current_user.id), is_admin=current_user.is_admin
    )
    return respond(request, {"items": [m.model_dump(mode="json") for m in messages]})
