"""Booking repository - Database operations for bookings and slot claims"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from ...config import BOOKING_NUMBER_START
from ...models import Booking, Business, Staff, TimeSlot
from .states import AdminPaymentStatus, BookingStatus, PaymentStatus

UNFINISHED_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def _with_refs(db: Session):
        return db.query(Booking).options(
            joinedload(Booking.user),
            joinedload(Booking.business),
            joinedload(Booking.service),
            joinedload(Booking.staff),
        )

    @staticmethod
    def get_booking(db: Session, booking_id: int) -> Optional[Booking]:
        return BookingRepository._with_refs(db).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_by_payment_intent(db: Session, payment_intent_id: str) -> Optional[Booking]:
        return (
            BookingRepository._with_refs(db)
            .filter(Booking.payment_intent_id == payment_intent_id)
            .first()
        )

    @staticmethod
    def list_bookings(
        db: Session,
        business_id: Optional[int] = None,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
        visible_to_user_id: Optional[int] = None,
    ) -> list[Booking]:
        """Bookings sorted by slot date then start time, oldest first"""
        query = BookingRepository._with_refs(db)
        if business_id is not None:
            query = query.filter(Booking.business_id == business_id)
        if user_id is not None:
            query = query.filter(Booking.user_id == user_id)
        if status:
            query = query.filter(Booking.status == status)
        if visible_to_user_id is not None:
            owned_business_ids = select(Business.id).where(Business.user_id == visible_to_user_id)
            query = query.filter(
                or_(
                    Booking.user_id == visible_to_user_id,
                    Booking.business_id.in_(owned_business_ids),
                )
            )
        return query.order_by(Booking.slot_date.asc(), Booking.slot_start_time.asc()).all()

    @staticmethod
    def next_booking_number(db: Session) -> int:
        current = db.query(func.max(Booking.booking_number)).scalar()
        return BOOKING_NUMBER_START if current is None else current + 1

    @staticmethod
    def find_slot(db: Session, service_id: int, slot_date: date, start_time: str) -> Optional[TimeSlot]:
        return (
            db.query(TimeSlot)
            .filter(
                TimeSlot.service_id == service_id,
                TimeSlot.date == slot_date,
                TimeSlot.start_time == start_time,
            )
            .first()
        )

    @staticmethod
    def get_slot(db: Session, slot_id: int) -> Optional[TimeSlot]:
        return db.query(TimeSlot).filter(TimeSlot.id == slot_id).first()

    @staticmethod
    def claim_slot(db: Session, slot_id: int) -> bool:
        """Mark a slot booked only if it is currently free; True when this call won it"""
        claimed = (
            db.query(TimeSlot)
            .filter(TimeSlot.id == slot_id, TimeSlot.is_booked.is_(False))
            .update({TimeSlot.is_booked: True}, synchronize_session=False)
        )
        return claimed == 1

    @staticmethod
    def attach_slot(db: Session, slot_id: int, booking_id: int) -> None:
        db.query(TimeSlot).filter(TimeSlot.id == slot_id).update(
            {TimeSlot.booking_id: booking_id}, synchronize_session=False
        )

    @staticmethod
    def release_slot(db: Session, slot_id: Optional[int], booking_id: int) -> None:
        """Free a slot held by this booking; slots re-claimed by others are left alone"""
        if slot_id is None:
            return
        db.query(TimeSlot).filter(
            TimeSlot.id == slot_id,
            or_(TimeSlot.booking_id == booking_id, TimeSlot.booking_id.is_(None)),
        ).update(
            {TimeSlot.is_booked: False, TimeSlot.booking_id: None}, synchronize_session=False
        )

    @staticmethod
    def staff_has_conflict(
        db: Session, staff_id: int, slot_date: date, start_time: str, exclude_booking_id: Optional[int] = None
    ) -> bool:
        query = db.query(Booking.id).filter(
            Booking.staff_id == staff_id,
            Booking.slot_date == slot_date,
            Booking.slot_start_time == start_time,
            Booking.status.in_(UNFINISHED_STATUSES),
        )
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)
        return db.query(query.exists()).scalar()

    @staticmethod
    def get_staff(db: Session, staff_id: int) -> Optional[Staff]:
        return db.query(Staff).filter(Staff.id == staff_id).first()

    @staticmethod
    def mark_deposit_paid(db: Session, booking_id: int, when: datetime) -> bool:
        """
        Conditional pending/unpaid -> confirmed/deposit_paid update.

        Returns True only for the call that performed the transition; repeated
        confirmations (webhook and client racing) match zero rows.
        """
        updated = (
            db.query(Booking)
            .filter(
                Booking.id == booking_id,
                Booking.status == BookingStatus.PENDING.value,
                Booking.payment_status == PaymentStatus.UNPAID.value,
            )
            .update(
                {
                    Booking.status: BookingStatus.CONFIRMED.value,
                    Booking.payment_status: PaymentStatus.DEPOSIT_PAID.value,
                    Booking.confirmed_at: when,
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    @staticmethod
    def mark_released(db: Session, booking_id: int, when: datetime) -> bool:
        """Conditional pending -> released update; False when already released"""
        updated = (
            db.query(Booking)
            .filter(
                Booking.id == booking_id,
                or_(
                    Booking.admin_payment_status == AdminPaymentStatus.PENDING.value,
                    Booking.admin_payment_status.is_(None),
                ),
            )
            .update(
                {
                    Booking.admin_payment_status: AdminPaymentStatus.RELEASED.value,
                    Booking.released_at: when,
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    @staticmethod
    def release_candidates(db: Session) -> list[Booking]:
        """Confirmed bookings not yet released, most recent slot first"""
        return (
            BookingRepository._with_refs(db)
            .filter(
                Booking.status == BookingStatus.CONFIRMED.value,
                or_(
                    Booking.admin_payment_status == AdminPaymentStatus.PENDING.value,
                    Booking.admin_payment_status.is_(None),
                ),
            )
            .order_by(Booking.slot_date.desc(), Booking.slot_start_time.desc())
            .all()
        )

    @staticmethod
    def count_unfinished_for_service(db: Session, service_id: int) -> int:
        return (
            db.query(func.count(Booking.id))
            .filter(Booking.service_id == service_id, Booking.status.in_(UNFINISHED_STATUSES))
            .scalar()
        )
