"""mk_withdrawal REST API — seller payout details and withdrawal requests."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, respond
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel
from src.mk_withdrawal.application.schemas import FinancialDetailsRequest, WithdrawalRequest
from src.mk_withdrawal.application.service import WithdrawalService

router = APIRouter(tags=["withdrawals"])

# Shared with mk_admin: the per-seller locks live on this instance
withdrawal_service = WithdrawalService()


@router.put("/finance/details")
async def save_financial_details(
    body: FinancialDetailsRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await withdrawal_service.save_financial_details(db, str(current_user.id), body)
    return respond(request, data.model_dump(mode="json"))


@router.get("/finance/details")
async def get_financial_details(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await withdrawal_service.get_financial_details(db, str(current_user.id))
    return respond(request, data.model_dump(mode="json"))


@router.post("/withdrawals", status_code=status.HTTP_201_CREATED)
async def request_withdrawal(
    body: WithdrawalRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await withdrawal_service.request_withdrawal(db, str(current_user.id), body.amount_cents)
    return respond(request, data.model_dump(mode="json"))


@router.get("/withdrawals")
async def list_my_withdrawals(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status_filter: str | None = Query(None, alias="status", description="Filter by withdrawal status"),
    cursor: str | None = Query(None, description="Pagination cursor (withdrawal ID)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await withdrawal_service.list_my_withdrawals(
        db, str(current_user.id), status_filter, cursor, limit
    )
    return respond(request, data.model_dump(mode="json"))
