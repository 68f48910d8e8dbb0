"""Business service - Business logic for business profiles"""

import logging
import math
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...cache import build_listing_key, cache, invalidate_business_listings, invalidate_service_listings
from ...models import Business, User
from .repository import BusinessRepository
from .schemas import (
    BankDetailsResponse,
    BankDetailsUpdate,
    BusinessCreate,
    BusinessResponse,
    BusinessUpdate,
    OwnerSummary,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def build_business_response(business: Business) -> BusinessResponse:
    owner = business.owner
    return BusinessResponse(
        id=business.id,
        userId=business.user_id,
        businessName=business.business_name,
        email=business.email,
        phone=business.phone,
        address=business.address,
        logo=business.logo,
        story=business.story,
        status=business.status,
        createdAt=business.created_at,
        updatedAt=business.updated_at,
        owner=OwnerSummary(id=owner.id, fname=owner.fname, lname=owner.lname, email=owner.email)
        if owner
        else None,
    )


def build_bank_details(business: Business) -> BankDetailsResponse:
    number = business.bank_account_number
    return BankDetailsResponse(
        accountName=business.bank_account_name,
        bsb=business.bank_bsb,
        accountNumberLast4=number[-4:] if number else None,
        contactNumber=business.bank_contact_number,
    )


class BusinessService:
    """Service layer for business profile logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BusinessRepository()

    def get_business(self, business_id: int) -> Business:
        business = self.repo.get_business(self.db, business_id)
        if not business:
            raise HTTPException(status_code=404, detail="Business not found")
        return business

    def get_owned_business(self, business_id: int, user: User) -> Business:
        """Get a business the user owns (admins may act on any business)"""
        business = self.get_business(business_id)
        if business.user_id != user.id and not user.is_admin:
            raise HTTPException(status_code=403, detail="You do not own this business")
        return business

    def create_business(self, data: BusinessCreate, user: User) -> Business:
        logger.info(f"📥 Registering business for user_id: {user.id}")

        if self.repo.get_by_owner(self.db, user.id):
            raise HTTPException(
                status_code=400,
                detail="You already have a business registered. Each account can own one business.",
            )
        if self.repo.name_or_email_taken(self.db, data.businessName, data.email):
            raise HTTPException(status_code=400, detail="Business name or email already taken")

        try:
            business = self.repo.create_business(
                self.db,
                user.id,
                business_name=data.businessName,
                email=data.email,
                phone=data.phone,
                address=data.address,
                logo=data.logo,
                story=data.story,
                status="approved",
            )
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Business registration conflict for user {user.id}: {e}")
            raise HTTPException(status_code=400, detail="Business name or email already taken") from e

        invalidate_business_listings()
        logger.info(f"✅ Business {business.id} registered by user {user.id}")
        return self.get_business(business.id)

    def search_businesses(
        self,
        q: Optional[str] = None,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        """Paginated business search, cached briefly per filter combination"""
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        key = build_listing_key(
            "businesses:search", q=q, userId=user_id, status=status, page=page, limit=limit
        )

        def fetch() -> dict:
            businesses, total = self.repo.search(self.db, q, user_id, status, page, limit)
            return {
                "businesses": [build_business_response(b).model_dump(mode="json") for b in businesses],
                "pagination": {
                    "total": total,
                    "page": page,
                    "limit": limit,
                    "pages": math.ceil(total / limit) if total else 0,
                },
            }

        return cache.get_or_fetch(key, fetch)

    def update_business(self, business_id: int, data: BusinessUpdate, user: User) -> Business:
        business = self.get_owned_business(business_id, user)

        if self.repo.name_or_email_taken(
            self.db, data.businessName, data.email, exclude_id=business.id
        ):
            raise HTTPException(status_code=400, detail="Business name or email already taken")

        updates = {
            "business_name": data.businessName,
            "email": data.email,
            "phone": data.phone,
            "address": data.address,
            "logo": data.logo,
            "story": data.story,
        }
        business = self.repo.update_business(self.db, business, **updates)
        invalidate_business_listings()
        invalidate_service_listings()
        return business

    def update_bank_details(self, business_id: int, data: BankDetailsUpdate, user: User) -> Business:
        business = self.get_owned_business(business_id, user)
        business.bank_account_name = data.accountName
        business.bank_bsb = data.bsb
        business.bank_account_number = data.accountNumber
        business.bank_contact_number = data.contactNumber
        self.db.commit()
        self.db.refresh(business)
        logger.info(f"🏦 Bank details updated for business {business.id}")
        return business

    def set_status(self, business_id: int, status: str, admin: User) -> Business:
        """Approve, reject or suspend review of a business"""
        business = self.get_business(business_id)
        previous = business.status
        business.status = status
        self.db.commit()
        self.db.refresh(business)
        invalidate_business_listings()
        invalidate_service_listings()
        logger.info(
            f"🛡️ Admin {admin.id} changed business {business.id} status: {previous} -> {status}"
        )
        return business
