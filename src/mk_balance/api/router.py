"""mk_balance REST API — the caller's own seller balance."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_balance.application.service import BalanceService
from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, respond
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel

router = APIRouter(prefix="/balance", tags=["balance"])

_service = BalanceService()


@router.get("")
async def get_balance(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, str(current_user.id))
    return respond(request, data.model_dump())
