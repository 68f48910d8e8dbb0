"""Booking service - Business logic for the booking lifecycle"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...cache import invalidate_service_listings
from ...email_service import (
    notify,
    send_booking_cancelled_business_email,
    send_booking_cancelled_customer_email,
    send_booking_completed_email,
    send_booking_confirmed_email,
    send_booking_request_email,
    send_new_booking_business_email,
    send_payment_receipt_email,
)
from ...models import Booking, Service, TimeSlot, User
from .pricing import cancellation_split, compute_booking_amounts
from .repository import BookingRepository
from .schemas import BookingCreate, BookingUpdate
from .states import BookingStatus, PaymentStatus, apply_transition
from .views import build_email_details

logger = logging.getLogger(__name__)

BOOKING_NUMBER_ATTEMPTS = 3
SLOT_TAKEN_MESSAGE = "This time slot is no longer available. Please choose another time."


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()

    # ========================================================================
    # ACCESS
    # ========================================================================

    @staticmethod
    def is_customer(booking: Booking, user: User) -> bool:
        return booking.user_id == user.id

    @staticmethod
    def is_business_owner(booking: Booking, user: User) -> bool:
        return booking.business is not None and booking.business.user_id == user.id

    def get_booking(self, booking_id: int, user: User) -> Booking:
        """Get a booking visible to the customer, the business owner or an admin"""
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        if not (
            user.is_admin or self.is_customer(booking, user) or self.is_business_owner(booking, user)
        ):
            raise HTTPException(status_code=403, detail="You do not have access to this booking")
        return booking

    def list_bookings(
        self,
        user: User,
        business_id: Optional[int] = None,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> list[Booking]:
        if status and status not in {s.value for s in BookingStatus}:
            raise HTTPException(status_code=400, detail=f"Invalid status filter: {status}")
        return self.repo.list_bookings(
            self.db,
            business_id=business_id,
            user_id=user_id,
            status=status,
            visible_to_user_id=None if user.is_admin else user.id,
        )

    # ========================================================================
    # CREATION
    # ========================================================================

    def _resolve_slot(self, service: Service, data: BookingCreate) -> TimeSlot:
        if data.slotId is not None:
            slot = self.repo.get_slot(self.db, data.slotId)
        else:
            slot = self.repo.find_slot(
                self.db, service.id, data.timeSlot.date, data.timeSlot.startTime
            )
        if not slot or slot.service_id != service.id:
            raise HTTPException(status_code=404, detail="Time slot not found")
        return slot

    def _resolve_add_ons(self, service: Service, data: BookingCreate) -> list[dict]:
        offered = {a["name"]: float(a.get("cost") or 0) for a in (service.add_ons or [])}
        chosen = []
        for selection in data.addOns:
            if selection.name not in offered:
                raise HTTPException(status_code=400, detail=f"Unknown add-on: {selection.name}")
            chosen.append({"name": selection.name, "cost": offered[selection.name]})
        return chosen

    def _check_staff(self, staff_id: int, business_id: int, slot: TimeSlot, exclude_booking_id=None):
        staff = self.repo.get_staff(self.db, staff_id)
        if not staff or staff.business_id != business_id or not staff.is_active:
            raise HTTPException(status_code=400, detail="Invalid staff member for this business")
        if slot.staff_ids and staff_id not in slot.staff_ids:
            raise HTTPException(
                status_code=400, detail="This staff member is not available for the selected time"
            )
        if self.repo.staff_has_conflict(
            self.db, staff_id, slot.date, slot.start_time, exclude_booking_id
        ):
            raise HTTPException(
                status_code=409, detail="This staff member is already booked at that time"
            )

    def _insert_with_claim(self, slot: TimeSlot, fields: dict) -> int:
        """
        Claim the slot and insert the booking in one transaction.

        The conditional claim is the only guard against double booking; the
        booking number is retried when a concurrent insert took it first.
        """
        for attempt in range(1, BOOKING_NUMBER_ATTEMPTS + 1):
            try:
                if not self.repo.claim_slot(self.db, slot.id):
                    self.db.rollback()
                    logger.info(f"⛔ Slot {slot.id} was already claimed")
                    raise HTTPException(status_code=409, detail=SLOT_TAKEN_MESSAGE)

                booking = Booking(booking_number=self.repo.next_booking_number(self.db), **fields)
                self.db.add(booking)
                self.db.flush()
                self.repo.attach_slot(self.db, slot.id, booking.id)
                self.db.commit()
                return booking.id
            except IntegrityError as e:
                self.db.rollback()
                logger.warning(f"⚠️ Booking number collision (attempt {attempt}): {e}")

        raise HTTPException(status_code=409, detail="Could not create booking, please try again")

    async def create_booking(self, data: BookingCreate, user: User) -> Booking:
        """Reserve a slot and create a pending, unpaid booking"""
        if data.userId is not None and data.userId != user.id:
            raise HTTPException(
                status_code=403, detail="You can only create bookings for your own account"
            )

        service = self.db.query(Service).filter(Service.id == data.serviceId).first()
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        if service.status != "listed" or service.business.status != "approved":
            raise HTTPException(status_code=400, detail="This service is not available for booking")

        slot = self._resolve_slot(service, data)
        if slot.is_booked:
            raise HTTPException(status_code=409, detail=SLOT_TAKEN_MESSAGE)

        if data.staffId is not None:
            self._check_staff(data.staffId, service.business_id, slot)

        add_ons = self._resolve_add_ons(service, data)
        base_price = slot.price if slot.price is not None else service.base_cost
        amounts = compute_booking_amounts(base_price, [a["cost"] for a in add_ons])

        booking_id = self._insert_with_claim(
            slot,
            {
                "user_id": user.id,
                "business_id": service.business_id,
                "service_id": service.id,
                "staff_id": data.staffId,
                "slot_id": slot.id,
                "slot_date": slot.date,
                "slot_start_time": slot.start_time,
                "slot_end_time": slot.end_time,
                "add_ons": add_ons,
                "total_cost": amounts.total_cost,
                "deposit_amount": amounts.deposit_amount,
                "remaining_amount": amounts.remaining_amount,
                "platform_fee": amounts.platform_fee,
                "status": BookingStatus.PENDING.value,
                "payment_status": PaymentStatus.UNPAID.value,
                "admin_payment_status": "pending",
                "customer_notes": data.customerNotes,
            },
        )
        invalidate_service_listings()

        booking = self.repo.get_booking(self.db, booking_id)
        logger.info(
            f"✅ Booking #{booking.booking_number} created for user {user.id} "
            f"(service {service.id}, slot {slot.id}, deposit {booking.deposit_amount})"
        )

        details = build_email_details(booking)
        await notify(
            send_booking_request_email(user.email, user.fname, details), "booking request"
        )
        await notify(
            send_new_booking_business_email(
                booking.business.email, booking.business.business_name, user.fname, details
            ),
            "new booking notification",
        )
        return booking

    # ========================================================================
    # UPDATES
    # ========================================================================

    def _reschedule(self, booking: Booking, slot_id: int) -> None:
        if booking.status not in (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value):
            raise HTTPException(status_code=400, detail="Only upcoming bookings can be rescheduled")
        if slot_id == booking.slot_id:
            return

        new_slot = self.repo.get_slot(self.db, slot_id)
        if not new_slot or new_slot.service_id != booking.service_id:
            raise HTTPException(status_code=404, detail="Time slot not found")
        if booking.staff_id is not None:
            self._check_staff(booking.staff_id, booking.business_id, new_slot, booking.id)

        if not self.repo.claim_slot(self.db, new_slot.id):
            raise HTTPException(status_code=409, detail=SLOT_TAKEN_MESSAGE)
        self.repo.attach_slot(self.db, new_slot.id, booking.id)
        self.repo.release_slot(self.db, booking.slot_id, booking.id)

        logger.info(f"🔁 Booking #{booking.booking_number} moved to slot {new_slot.id}")
        booking.slot_id = new_slot.id
        booking.slot_date = new_slot.date
        booking.slot_start_time = new_slot.start_time
        booking.slot_end_time = new_slot.end_time

    def _cancel(self, booking: Booking, user: User, cancelled_by: str, reason: Optional[str]) -> None:
        if cancelled_by == "customer" and not (self.is_customer(booking, user) or user.is_admin):
            raise HTTPException(status_code=403, detail="Only the customer can cancel as customer")
        if cancelled_by == "business" and not (
            self.is_business_owner(booking, user) or user.is_admin
        ):
            raise HTTPException(status_code=403, detail="Only the business can cancel as business")
        if booking.status == BookingStatus.CANCELLED.value:
            raise HTTPException(status_code=400, detail="Booking is already cancelled")

        deposit_paid = booking.payment_status == PaymentStatus.DEPOSIT_PAID.value
        refund, payout = cancellation_split(booking.deposit_amount, cancelled_by, deposit_paid)

        apply_transition(
            booking,
            status=BookingStatus.CANCELLED,
            payment_status=PaymentStatus.REFUNDED if deposit_paid else None,
        )
        booking.cancelled_at = datetime.utcnow()
        booking.cancelled_by = cancelled_by
        booking.cancellation_reason = reason
        booking.refund_amount = refund
        booking.business_payout_amount = payout
        self.repo.release_slot(self.db, booking.slot_id, booking.id)

        logger.info(
            f"❌ Booking #{booking.booking_number} cancelled by {cancelled_by} "
            f"(refund {refund}, business payout {payout})"
        )

    def _complete(self, booking: Booking, user: User) -> None:
        if not (self.is_business_owner(booking, user) or user.is_admin):
            raise HTTPException(
                status_code=403, detail="Only the business can mark a booking as completed"
            )
        apply_transition(
            booking, status=BookingStatus.COMPLETED, payment_status=PaymentStatus.FULLY_PAID
        )
        booking.completed_at = datetime.utcnow()
        logger.info(f"🏁 Booking #{booking.booking_number} completed")

    async def update_booking(self, booking_id: int, data: BookingUpdate, user: User) -> Booking:
        booking = self.get_booking(booking_id, user)

        if data.businessNotes is not None:
            if not (self.is_business_owner(booking, user) or user.is_admin):
                raise HTTPException(status_code=403, detail="Only the business can edit business notes")
            booking.business_notes = data.businessNotes
        if data.customerNotes is not None:
            if not self.is_customer(booking, user):
                raise HTTPException(status_code=403, detail="Only the customer can edit customer notes")
            booking.customer_notes = data.customerNotes
        if data.slotId is not None:
            if not (self.is_customer(booking, user) or user.is_admin):
                raise HTTPException(status_code=403, detail="Only the customer can reschedule")
            self._reschedule(booking, data.slotId)

        if data.status == BookingStatus.CANCELLED.value:
            self._cancel(booking, user, data.cancelledBy, data.cancellationReason)
        elif data.status == BookingStatus.COMPLETED.value:
            self._complete(booking, user)

        self.db.commit()
        invalidate_service_listings()
        booking = self.repo.get_booking(self.db, booking_id)

        if data.status == BookingStatus.CANCELLED.value:
            await self._send_cancellation_emails(booking)
        elif data.status == BookingStatus.COMPLETED.value:
            details = build_email_details(booking)
            await notify(
                send_booking_completed_email(booking.user.email, booking.user.fname, details),
                "booking completed",
            )
            await notify(
                send_payment_receipt_email(booking.user.email, booking.user.fname, details),
                "payment receipt",
            )
        return booking

    async def _send_cancellation_emails(self, booking: Booking) -> None:
        details = build_email_details(booking)
        await notify(
            send_booking_cancelled_customer_email(
                booking.user.email, booking.user.fname, booking.cancelled_by, details
            ),
            "customer cancellation",
        )
        await notify(
            send_booking_cancelled_business_email(
                booking.business.email, booking.business.business_name, booking.cancelled_by, details
            ),
            "business cancellation",
        )

    def delete_booking(self, booking_id: int, user: User) -> dict:
        """Remove a booking that was never paid and free its slot"""
        booking = self.get_booking(booking_id, user)
        if booking.status != BookingStatus.PENDING.value or (
            booking.payment_status != PaymentStatus.UNPAID.value
        ):
            raise HTTPException(
                status_code=400,
                detail="Only unpaid pending bookings can be deleted. Cancel the booking instead.",
            )

        self.repo.release_slot(self.db, booking.slot_id, booking.id)
        self.db.delete(booking)
        self.db.commit()
        invalidate_service_listings()
        logger.info(f"🗑️ Booking #{booking.booking_number} deleted by user {user.id}")
        return {"message": "Booking deleted successfully"}

    # ========================================================================
    # PAYMENT CONFIRMATION
    # ========================================================================

    async def confirm_deposit(self, booking: Booking, source: str) -> bool:
        """
        Move a booking to confirmed/deposit_paid after the gateway reported success.

        Safe to call from both the client confirmation and the webhook: only the
        call that performs the transition sends the confirmation email.
        """
        transitioned = self.repo.mark_deposit_paid(self.db, booking.id, datetime.utcnow())
        self.db.commit()
        self.db.refresh(booking)

        if not transitioned:
            if booking.status == BookingStatus.CONFIRMED.value:
                logger.info(f"🔄 Booking #{booking.booking_number} already confirmed ({source})")
            else:
                logger.warning(
                    f"⚠️ Payment success for booking #{booking.booking_number} in status "
                    f"'{booking.status}' ignored ({source})"
                )
            return False

        logger.info(f"💳 Booking #{booking.booking_number} confirmed via {source}")
        await notify(
            send_booking_confirmed_email(
                booking.user.email, booking.user.fname, build_email_details(booking)
            ),
            "booking confirmed",
        )
        return True
