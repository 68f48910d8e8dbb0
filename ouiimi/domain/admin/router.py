"""Admin router - Payout release and business moderation endpoints"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import User
from ..bookings.views import build_booking_response
from ..businesses.schemas import BusinessStatusUpdate
from ..businesses.service import BusinessService
from .schemas import BusinessStatusResponse, PendingReleasesResponse, ReleasePaymentResponse
from .service import AdminService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    """Dependency injection for AdminService"""
    return AdminService(db)


# ============================================================================
# PAYMENT RELEASE
# ============================================================================


@router.get("/bookings/pending", response_model=PendingReleasesResponse)
async def get_pending_releases(
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Bookings whose service has ended and whose payout has not been released"""
    bookings = service.pending_releases()
    return PendingReleasesResponse(
        bookings=[build_booking_response(b) for b in bookings], count=len(bookings)
    )


@router.put("/bookings/{booking_id}/release-payment", response_model=ReleasePaymentResponse)
async def release_payment(
    booking_id: int,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    booking, already_released = await service.release_payment(booking_id, admin)
    return ReleasePaymentResponse(
        message="Payment already released" if already_released else "Payment released successfully",
        alreadyReleased=already_released,
        booking=build_booking_response(booking),
    )


# ============================================================================
# BUSINESS MODERATION
# ============================================================================


@router.put("/business/{business_id}/status", response_model=BusinessStatusResponse)
async def set_business_status(
    business_id: int,
    data: BusinessStatusUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    business = BusinessService(db).set_status(business_id, data.status, admin)
    return BusinessStatusResponse(
        message=f"Business status updated to {business.status}",
        businessId=business.id,
        status=business.status,
    )
