"""Business repository - Database operations for businesses"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import Business


class BusinessRepository:
    """Repository for business database operations"""

    @staticmethod
    def get_business(db: Session, business_id: int) -> Optional[Business]:
        return (
            db.query(Business)
            .options(joinedload(Business.owner))
            .filter(Business.id == business_id)
            .first()
        )

    @staticmethod
    def get_by_owner(db: Session, user_id: int) -> Optional[Business]:
        return db.query(Business).filter(Business.user_id == user_id).first()

    @staticmethod
    def name_or_email_taken(
        db: Session, business_name: Optional[str], email: Optional[str], exclude_id: Optional[int] = None
    ) -> bool:
        conditions = []
        if business_name:
            conditions.append(func.lower(Business.business_name) == business_name.lower())
        if email:
            conditions.append(Business.email == email)
        if not conditions:
            return False
        query = db.query(Business.id).filter(or_(*conditions))
        if exclude_id is not None:
            query = query.filter(Business.id != exclude_id)
        return db.query(query.exists()).scalar()

    @staticmethod
    def search(
        db: Session,
        q: Optional[str] = None,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Business], int]:
        """
        Search businesses by name or email.

        An owner filter shows that owner's business whatever its status; otherwise
        the status filter applies, defaulting to approved businesses only.
        """
        query = db.query(Business).options(joinedload(Business.owner))
        if q:
            pattern = f"%{q.lower()}%"
            query = query.filter(
                or_(func.lower(Business.business_name).like(pattern), Business.email.like(pattern))
            )
        if user_id is not None:
            query = query.filter(Business.user_id == user_id)
        else:
            query = query.filter(Business.status == (status or "approved"))

        total = query.count()
        businesses = (
            query.order_by(Business.created_at.desc(), Business.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return businesses, total

    @staticmethod
    def create_business(db: Session, user_id: int, **business_data) -> Business:
        business = Business(user_id=user_id, **business_data)
        db.add(business)
        db.commit()
        db.refresh(business)
        return business

    @staticmethod
    def update_business(db: Session, business: Business, **updates) -> Business:
        """Update a business with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(business, key):
                setattr(business, key, value)

        db.commit()
        db.refresh(business)
        return business
