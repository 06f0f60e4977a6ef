"""
Shared route dependencies.

Authentication itself happens upstream; the acting user arrives as the
X-User-Id header and is resolved against the users table here.
"""

from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from cardnexus.db.database import get_session
from cardnexus.db.marketplace import get_user
from cardnexus.models.db import UserDB
from cardnexus.models.failure import AuthenticationRequiredError

SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def get_optional_user(
    session: SessionDep,
    x_user_id: Annotated[str | None, Header()] = None,
) -> UserDB | None:
    """The acting user, or None for anonymous requests."""
    if not x_user_id:
        return None
    try:
        user_id = int(x_user_id)
    except ValueError as e:
        raise AuthenticationRequiredError("Invalid user id") from e

    user = await get_user(session, user_id)
    if user is None:
        raise AuthenticationRequiredError("Unknown user")
    return user


async def get_current_user(
    user: Annotated[UserDB | None, Depends(get_optional_user)],
) -> UserDB:
    """The acting user; 401 when the request is anonymous."""
    if user is None:
        raise AuthenticationRequiredError()
    return user


OptionalUser = Annotated[UserDB | None, Depends(get_optional_user)]
CurrentUser = Annotated[UserDB, Depends(get_current_user)]
