"""Account repository - Database operations for users and reset tokens"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import PasswordReset, User


class AccountRepository:
    """Repository for user and password reset database operations"""

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()

    @staticmethod
    def get_by_identifier(db: Session, identifier: str) -> Optional[User]:
        """Find a user by username or email, case-insensitively"""
        identifier = identifier.lower()
        return db.query(User).filter(or_(User.username == identifier, User.email == identifier)).first()

    @staticmethod
    def email_or_username_taken(db: Session, email: str, username: str) -> bool:
        query = db.query(User.id).filter(or_(User.email == email, User.username == username))
        return db.query(query.exists()).scalar()

    @staticmethod
    def create_user(db: Session, **user_data) -> User:
        user = User(**user_data)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def replace_reset_token(db: Session, email: str, created_at) -> PasswordReset:
        """Invalidate earlier reset links for the email and store a new one"""
        db.query(PasswordReset).filter(PasswordReset.email == email).delete(synchronize_session=False)
        reset = PasswordReset(email=email, created_at=created_at)
        db.add(reset)
        db.commit()
        db.refresh(reset)
        return reset

    @staticmethod
    def get_reset(db: Session, token: str) -> Optional[PasswordReset]:
        return db.query(PasswordReset).filter(PasswordReset.id == token).first()
