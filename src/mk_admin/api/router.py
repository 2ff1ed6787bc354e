"""Admin REST API — every route requires an administrator."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_admin.application.service import AdminService
from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, respond
from src.mk_dispute.application.schemas import ResolveDisputeRequest
from src.mk_gateway.auth.dependencies import require_admin
from src.mk_gateway.user.db_models import UserModel
from src.mk_withdrawal.api.router import withdrawal_service
from src.mk_withdrawal.application.schemas import RejectWithdrawalRequest

router = APIRouter(prefix="/admin", tags=["admin"])
# Withdrawal requests and approvals share one instance (per-seller locks)
_service = AdminService(withdrawals=withdrawal_service)


@router.get("/disputes")
async def list_disputes(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status_filter: str | None = Query(None, alias="status", description="Filter by dispute status"),
    cursor: str | None = Query(None, description="Pagination cursor (dispute ID)"),
    limit: int = Query(50, ge=1, le=200, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_disputes(db, status_filter, cursor, limit)
    return respond(request, data.model_dump(mode="json"))


@router.post("/disputes/{dispute_id}/review")
async def review_dispute(
    dispute_id: str,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.review_dispute(db, dispute_id, str(admin.id))
    return respond(request, data.model_dump(mode="json"))


@router.post("/disputes/{dispute_id}/resolve")
async def resolve_dispute(
    dispute_id: str,
    body: ResolveDisputeRequest,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.resolve_dispute(
        db, dispute_id, str(admin.id), body.resolution, body.details
    )
    return respond(request, data.model_dump(mode="json"))


@router.get("/withdrawals")
async def list_withdrawals(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status_filter: str | None = Query(
        "pending", alias="status", description="Filter by withdrawal status"
    ),
    cursor: str | None = Query(None, description="Pagination cursor (withdrawal ID)"),
    limit: int = Query(50, ge=1, le=200, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_withdrawals(db, status_filter, cursor, limit)
    return respond(request, data.model_dump(mode="json"))


@router.post("/withdrawals/{withdrawal_id}/approve")
async def approve_withdrawal(
    withdrawal_id: str,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.approve_withdrawal(db, withdrawal_id, str(admin.id))
    return respond(request, data.model_dump(mode="json"))


@router.post("/withdrawals/{withdrawal_id}/reject")
async def reject_withdrawal(
    withdrawal_id: str,
    body: RejectWithdrawalRequest,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.reject_withdrawal(db, withdrawal_id, str(admin.id), body.note)
    return respond(request, data.model_dump(mode="json"))


@router.post("/orders/release-cleared")
async def release_cleared_orders(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.release_cleared_orders(db, str(admin.id))
    return respond(request, data.model_dump(mode="json"))


@router.get("/balances/{seller_id}")
async def get_seller_balance(
    seller_id: str,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_seller_balance(db, seller_id)
    return respond(request, data.model_dump())


@router.get("/reconciliation")
async def verify_reconciliation(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.verify_reconciliation(db)
    return respond(request, data.model_dump())
