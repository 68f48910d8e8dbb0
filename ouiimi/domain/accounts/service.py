"""Account service - Signup, signin, password reset and profiles"""

import logging
from datetime import datetime, timedelta
from urllib.parse import urlencode

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import FRONTEND_URL, PASSWORD_RESET_TTL_SECONDS
from ...email_service import notify, send_password_reset_email, send_welcome_email
from ...models import User
from ...security_utils import hash_password_bcrypt, verify_password_bcrypt
from .repository import AccountRepository
from .schemas import ProfileUpdate, ResetPasswordRequest, SigninRequest, SignupRequest

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, you will receive a password reset link."
INVALID_RESET_MESSAGE = "Invalid or expired reset link. Please request a new one."


class AccountService:
    """Service layer for account logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AccountRepository()

    async def signup(self, data: SignupRequest) -> User:
        logger.info(f"📥 Signup request for {data.email}")
        if self.repo.email_or_username_taken(self.db, data.email, data.username):
            raise HTTPException(status_code=400, detail="Email or username already exists")

        try:
            user = self.repo.create_user(
                self.db,
                fname=data.fname,
                lname=data.lname,
                username=data.username,
                email=data.email,
                password_hash=hash_password_bcrypt(data.password),
                address=data.address,
                contact_no=data.contactNo,
                role="user",
            )
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=400, detail="Email or username already exists") from e

        logger.info(f"✅ User {user.id} signed up ({user.role})")
        await notify(send_welcome_email(user.email, user.fname), "welcome")
        return user

    def signin(self, data: SigninRequest) -> User:
        user = self.repo.get_by_identifier(self.db, data.username)
        if not user or not verify_password_bcrypt(data.password, user.password_hash):
            logger.info(f"🚫 Failed signin for {data.username}")
            raise HTTPException(status_code=401, detail="Invalid credentials")
        if not user.is_enabled:
            raise HTTPException(status_code=403, detail="Account is disabled")
        return user

    async def forgot_password(self, email: str) -> dict:
        """Always answers the same way so account existence is not revealed"""
        user = self.repo.get_by_email(self.db, email)
        if not user:
            logger.info(f"Password reset requested for unknown email {email}")
            return {"message": FORGOT_PASSWORD_MESSAGE}

        reset = self.repo.replace_reset_token(self.db, user.email, datetime.utcnow())
        link = f"{FRONTEND_URL}/reset-password?{urlencode({'email': user.email, 'token': reset.id})}"
        await notify(send_password_reset_email(user.email, user.fname, link), "password reset")
        return {"message": FORGOT_PASSWORD_MESSAGE}

    def reset_password(self, data: ResetPasswordRequest) -> dict:
        reset = self.repo.get_reset(self.db, data.token)
        if not reset or reset.email != data.email:
            raise HTTPException(status_code=400, detail=INVALID_RESET_MESSAGE)
        if datetime.utcnow() > reset.created_at + timedelta(seconds=PASSWORD_RESET_TTL_SECONDS):
            self.db.delete(reset)
            self.db.commit()
            raise HTTPException(status_code=400, detail=INVALID_RESET_MESSAGE)

        user = self.repo.get_by_email(self.db, data.email)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        user.password_hash = hash_password_bcrypt(data.password)
        self.db.delete(reset)
        self.db.commit()
        logger.info(f"🔑 Password reset for user {user.id}")
        return {"message": "Password reset successful. You can now sign in."}

    def set_admin_role(self, identifier: str, is_admin: bool = True) -> User:
        """Grant or revoke the admin role for an existing account (operator only)"""
        user = self.repo.get_by_identifier(self.db, identifier)
        if not user:
            raise LookupError(f"No account found for {identifier}")
        user.role = "admin" if is_admin else "user"
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"🛡️ User {user.id} role set to {user.role}")
        return user

    def get_profile(self, user_id: int, current_user: User) -> User:
        if user_id != current_user.id and not current_user.is_admin:
            raise HTTPException(status_code=403, detail="You can only view your own profile")
        user = self.repo.get_user(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def update_profile(self, user_id: int, data: ProfileUpdate, current_user: User) -> User:
        if user_id != current_user.id:
            raise HTTPException(status_code=403, detail="You can only update your own profile")
        user = self.repo.get_user(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        updates = {
            "fname": data.fname,
            "lname": data.lname,
            "address": data.address,
            "contact_no": data.contactNo,
            "pic": data.pic,
        }
        for key, value in updates.items():
            if value is not None:
                setattr(user, key, value)
        self.db.commit()
        self.db.refresh(user)
        return user
