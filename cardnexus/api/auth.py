"""
Account signup.

Sign-in and sessions are handled by the external auth layer; this endpoint
only creates the account record with a bcrypt password hash.
"""

import re
from datetime import datetime

from fastapi import APIRouter, status
from pydantic import BaseModel

from cardnexus.api.deps import SessionDep
from cardnexus.db.marketplace import create_user, get_user_by_email, get_user_by_username
from cardnexus.models.failure import ApiResponse, ConflictError, ValidationFailedError
from cardnexus.services.passwords import hash_password

router = APIRouter(prefix="/auth", tags=["auth"])

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_MIN_LENGTH = 8


class SignupRequest(BaseModel):
    username: str = ""
    email: str = ""
    password: str = ""


class SignupResponse(BaseModel):
    id: int
    username: str
    email: str
    created_at: datetime


@router.post(
    "/signup",
    response_model=ApiResponse[SignupResponse],
    status_code=status.HTTP_201_CREATED,
)
async def signup(request: SignupRequest, session: SessionDep) -> ApiResponse[SignupResponse]:
    """Register a new account."""
    username = request.username.strip()
    email = request.email.strip()

    if not username or not email or not request.password:
        raise ValidationFailedError("Username, email and password are required")
    if not EMAIL_PATTERN.match(email):
        raise ValidationFailedError("Invalid email address")
    if len(request.password) < PASSWORD_MIN_LENGTH:
        raise ValidationFailedError(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
        )

    if await get_user_by_email(session, email):
        raise ConflictError("Email is already registered")
    if await get_user_by_username(session, username):
        raise ConflictError("Username is already taken")

    user = await create_user(
        session, username, email, password_hash=hash_password(request.password)
    )
    return ApiResponse.ok(
        SignupResponse(
            id=user.id, username=user.username, email=user.email, created_at=user.created_at
        )
    )
