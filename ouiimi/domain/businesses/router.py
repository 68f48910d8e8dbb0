"""Business router - FastAPI endpoints for business profiles"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import BankDetailsUpdate, BusinessCreate, BusinessEnvelope, BusinessSearchResponse, BusinessUpdate
from .service import BusinessService, build_bank_details, build_business_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/business", tags=["Businesses"])


def get_business_service(db: Session = Depends(get_db)) -> BusinessService:
    """Dependency injection for BusinessService"""
    return BusinessService(db)


@router.post("/create", response_model=BusinessEnvelope, status_code=201)
async def create_business(
    data: BusinessCreate,
    current_user: User = Depends(get_current_user),
    service: BusinessService = Depends(get_business_service),
):
    business = service.create_business(data, current_user)
    return BusinessEnvelope(
        message="Business registered successfully", business=build_business_response(business)
    )


@router.get("/search", response_model=BusinessSearchResponse)
async def search_businesses(
    q: Optional[str] = Query(None),
    userId: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: BusinessService = Depends(get_business_service),
):
    """Public search; only approved businesses unless filtered by owner or status"""
    return service.search_businesses(q, userId, status, page, limit)


@router.get("/{business_id}", response_model=BusinessEnvelope)
async def get_business(business_id: int, service: BusinessService = Depends(get_business_service)):
    business = service.get_business(business_id)
    return BusinessEnvelope(business=build_business_response(business))


@router.put("/{business_id}", response_model=BusinessEnvelope)
async def update_business(
    business_id: int,
    data: BusinessUpdate,
    current_user: User = Depends(get_current_user),
    service: BusinessService = Depends(get_business_service),
):
    business = service.update_business(business_id, data, current_user)
    return BusinessEnvelope(
        message="Business updated successfully", business=build_business_response(business)
    )


@router.put("/{business_id}/bank-details")
async def update_bank_details(
    business_id: int,
    data: BankDetailsUpdate,
    current_user: User = Depends(get_current_user),
    service: BusinessService = Depends(get_business_service),
):
    business = service.update_bank_details(business_id, data, current_user)
    return {
        "message": "Bank details updated successfully",
        "bankDetails": build_bank_details(business).model_dump(),
    }
