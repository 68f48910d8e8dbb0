"""Admin service - Payout release and business moderation"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import notify, send_payment_released_email
from ...models import Booking, User
from ..bookings.repository import BookingRepository
from ..bookings.states import AdminPaymentStatus, BookingStatus, admin_status_of
from ..bookings.views import build_email_details, slot_end_at

logger = logging.getLogger(__name__)

RELEASABLE_STATUSES = (BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value)


class AdminService:
    """Service layer for admin payout operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()

    def pending_releases(self, now: Optional[datetime] = None) -> list[Booking]:
        """Confirmed, unreleased bookings whose slot has already ended"""
        # Completed bookings stay releasable by id but are not listed here
        now = now or datetime.now()
        return [b for b in self.repo.release_candidates(self.db) if slot_end_at(b) <= now]

    async def release_payment(
        self, booking_id: int, admin: User, now: Optional[datetime] = None
    ) -> tuple[Booking, bool]:
        """
        Mark the business payout for a booking as released.

        Returns the booking and whether it had already been released; a repeat
        call changes nothing and sends no email.
        """
        now = now or datetime.now()
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")

        if admin_status_of(booking.admin_payment_status) == AdminPaymentStatus.RELEASED:
            logger.info(f"🔄 Payment for booking #{booking.booking_number} already released")
            return booking, True

        if booking.status not in RELEASABLE_STATUSES:
            raise HTTPException(
                status_code=400,
                detail="Only confirmed or completed bookings can have their payment released",
            )
        if slot_end_at(booking) > now:
            raise HTTPException(
                status_code=400, detail="Payment can only be released after the service has ended"
            )

        released = self.repo.mark_released(self.db, booking.id, datetime.utcnow())
        self.db.commit()
        booking = self.repo.get_booking(self.db, booking_id)
        if not released:
            return booking, True

        logger.info(
            f"💸 Admin {admin.id} released payment for booking #{booking.booking_number} "
            f"to business {booking.business_id}"
        )
        await notify(
            send_payment_released_email(
                booking.business.email, booking.business.business_name, build_email_details(booking)
            ),
            "payment released",
        )
        return booking, False
