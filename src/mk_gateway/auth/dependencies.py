"""FastAPI dependencies: get_current_user, require_admin.

Usage in any protected router:
    from src.mk_gateway.auth.dependencies import get_current_user

    @router.get("/protected")
    async def protected(user: UserModel = Depends(get_current_user)):
        ...

Roles are attributes of one account (buyer, seller and supplier are the same
user); only the administrator flag is checked here. Every other standing
check (is this the order's buyer?) happens in the owning service and raises
NotEligibleError.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.errors import AdminRequiredError, NotEligibleError
from src.mk_gateway.auth.jwt_handler import InvalidTokenError, decode_access_token
from src.mk_gateway.user.db_models import UserModel

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=True)

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Extract and validate the JWT Bearer token, return the UserModel.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    Raises NotEligibleError (403) if the account is banned/disabled.
    """
    try:
        payload = decode_access_token(token)
    except InvalidTokenError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION

    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _CREDENTIALS_EXCEPTION

    if not user.is_active:
        raise NotEligibleError("account is disabled")

    return user


async def require_admin(
    current_user: UserModel = Depends(get_current_user),
) -> UserModel:
    """Verify the caller is an administrator (dispute mediation, payouts)."""
    if not current_user.is_admin:
        raise AdminRequiredError()
    return current_user
