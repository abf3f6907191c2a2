"""
CivicBridge Backend: Authentication Dependency
==============================================

What:  Resolves the calling user for every /projects request.
How:   Login and registration live in the upstream gateway, which forwards
       the authenticated user id in `settings.user_id_header`. The dependency
       loads the matching local User and stores it on `request.state.user`.
Who:   Injected into route handlers with Depends(get_current_user).
"""

import logging

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from civicbridge.config import settings
from civicbridge.database import get_db_session
from civicbridge.exceptions import UnauthorizedError
from civicbridge.models.user import User

logger = logging.getLogger(__name__)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Return the authenticated User.

    Raises:
        UnauthorizedError: header missing or unknown user id
    """
    user_id = request.headers.get(settings.user_id_header, "").strip()
    if not user_id:
        raise UnauthorizedError("Authentication required")

    user = await db.get(User, user_id)
    if user is None:
        logger.warning("Unknown user id forwarded by gateway: %s", user_id)
        raise UnauthorizedError("Authentication required")

    request.state.user = user
    return user
