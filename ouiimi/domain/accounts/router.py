"""Account routers - Authentication and profile endpoints"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ...security_utils import issue_user_token
from .schemas import (
    AuthResponse,
    AuthUserResponse,
    ForgotPasswordRequest,
    ProfileUpdate,
    ResetPasswordRequest,
    SigninRequest,
    SignupRequest,
    UserEnvelope,
    UserResponse,
)
from .service import AccountService

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/api/auth", tags=["Auth"])
user_router = APIRouter(prefix="/api/user", tags=["Users"])

# Rate limiters
rate_limit_auth = create_rate_limiter(limit=10, window_seconds=900, key_prefix="auth")
rate_limit_password_reset = create_rate_limiter(
    limit=5,
    window_seconds=3600,
    key_prefix="password_reset",
    use_ip=True,
)


def get_account_service(db: Session = Depends(get_db)) -> AccountService:
    """Dependency injection for AccountService"""
    return AccountService(db)


def build_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        fname=user.fname,
        lname=user.lname,
        email=user.email,
        username=user.username,
        address=user.address,
        contactNo=user.contact_no,
        pic=user.pic,
        role=user.role,
        createdAt=user.created_at,
    )


def build_auth_user(user: User) -> AuthUserResponse:
    return AuthUserResponse(**build_user_response(user).model_dump(), token=issue_user_token(user))


# ============================================================================
# AUTHENTICATION
# ============================================================================


@auth_router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(
    data: SignupRequest,
    service: AccountService = Depends(get_account_service),
    _: None = Depends(rate_limit_auth),
):
    user = await service.signup(data)
    return AuthResponse(message="Account created successfully", user=build_auth_user(user))


@auth_router.post("/signin", response_model=AuthResponse)
async def signin(
    data: SigninRequest,
    service: AccountService = Depends(get_account_service),
    _: None = Depends(rate_limit_auth),
):
    user = service.signin(data)
    return AuthResponse(message="Signed in successfully", user=build_auth_user(user))


@auth_router.post("/forgot-password")
async def forgot_password(
    data: ForgotPasswordRequest,
    service: AccountService = Depends(get_account_service),
    _: None = Depends(rate_limit_password_reset),
):
    """Email a reset link - Rate limited to 5 requests per hour per IP"""
    return await service.forgot_password(data.email)


@auth_router.post("/reset-password")
async def reset_password(
    data: ResetPasswordRequest,
    service: AccountService = Depends(get_account_service),
    _: None = Depends(rate_limit_password_reset),
):
    return service.reset_password(data)


# ============================================================================
# PROFILE
# ============================================================================


@user_router.get("/{user_id}", response_model=UserEnvelope)
async def get_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    user = service.get_profile(user_id, current_user)
    return UserEnvelope(user=build_user_response(user))


@user_router.put("/{user_id}", response_model=UserEnvelope)
async def update_user(
    user_id: int,
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    user = service.update_profile(user_id, data, current_user)
    return UserEnvelope(message="Profile updated successfully", user=build_user_response(user))
