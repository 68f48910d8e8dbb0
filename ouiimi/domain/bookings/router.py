"""Booking router - FastAPI endpoints for booking operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from .schemas import BookingCreate, BookingEnvelope, BookingListResponse, BookingUpdate
from .service import BookingService
from .views import build_booking_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])

rate_limit_booking = create_rate_limiter(limit=30, window_seconds=900, key_prefix="booking_create")


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.post("", response_model=BookingEnvelope, status_code=201)
async def create_booking(
    data: BookingCreate,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
    _: None = Depends(rate_limit_booking),
):
    """Reserve a time slot; the booking stays pending until the deposit is paid"""
    booking = await service.create_booking(data, current_user)
    return BookingEnvelope(
        message="Booking created successfully", booking=build_booking_response(booking)
    )


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    businessId: Optional[int] = Query(None),
    userId: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    bookings = service.list_bookings(current_user, businessId, userId, status)
    return BookingListResponse(bookings=[build_booking_response(b) for b in bookings])


@router.get("/{booking_id}", response_model=BookingEnvelope)
async def get_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.get_booking(booking_id, current_user)
    return BookingEnvelope(booking=build_booking_response(booking))


@router.put("/{booking_id}", response_model=BookingEnvelope)
async def update_booking(
    booking_id: int,
    data: BookingUpdate,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Cancel, complete, reschedule or annotate a booking"""
    booking = await service.update_booking(booking_id, data, current_user)
    return BookingEnvelope(
        message="Booking updated successfully", booking=build_booking_response(booking)
    )


@router.delete("/{booking_id}")
async def delete_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.delete_booking(booking_id, current_user)
