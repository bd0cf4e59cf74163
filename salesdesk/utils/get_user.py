from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from salesdesk.core.db import get_db
from salesdesk.core.exceptions import AppException
from salesdesk.constants.error_codes import ErrorCode
from salesdesk.models.users.user_models import User
from salesdesk.utils.logger import get_logger

logger = get_logger("auth.guard")


async def get_current_user(
    request: Request,
    x_user: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the acting user from the ``X-User`` header. Identity is asserted
    by the fronting gateway; this service only maps it onto a known role.
    """
    if not x_user or not x_user.strip():
        logger.warning("Missing X-User header")
        raise AppException(401, "Missing user identity", ErrorCode.UNAUTHORIZED)

    username = x_user.strip()
    result = await db.execute(
        select(User).where(User.username == username)
    )
    user = result.scalars().first()

    if not user:
        logger.warning("Unknown user", extra={"username": username})
        raise AppException(401, "User not found", ErrorCode.UNAUTHORIZED)

    if not user.is_active:
        logger.warning("Inactive user access blocked", extra={"user_id": user.id})
        raise AppException(403, "User account is inactive", ErrorCode.PERMISSION_DENIED)

    request.state.user = user
    return user
