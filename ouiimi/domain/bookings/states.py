"""Booking state model - one enum and transition table per concern"""

import logging
from enum import Enum
from typing import Optional

from fastapi import HTTPException

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    DEPOSIT_PAID = "deposit_paid"
    FULLY_PAID = "fully_paid"
    REFUNDED = "refunded"


class AdminPaymentStatus(str, Enum):
    PENDING = "pending"
    RELEASED = "released"


class CancelledBy(str, Enum):
    CUSTOMER = "customer"
    BUSINESS = "business"


BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, set[PaymentStatus]] = {
    PaymentStatus.UNPAID: {PaymentStatus.DEPOSIT_PAID},
    PaymentStatus.DEPOSIT_PAID: {PaymentStatus.FULLY_PAID, PaymentStatus.REFUNDED},
    PaymentStatus.FULLY_PAID: set(),
    PaymentStatus.REFUNDED: set(),
}

ADMIN_PAYMENT_TRANSITIONS: dict[AdminPaymentStatus, set[AdminPaymentStatus]] = {
    AdminPaymentStatus.PENDING: {AdminPaymentStatus.RELEASED},
    AdminPaymentStatus.RELEASED: set(),
}


def admin_status_of(value: Optional[str]) -> AdminPaymentStatus:
    """Rows written before the admin flag existed carry NULL, which means pending"""
    return AdminPaymentStatus(value or AdminPaymentStatus.PENDING.value)


def can_transition(table: dict, current: Enum, target: Enum) -> bool:
    return current == target or target in table[current]


def assert_transition(table: dict, current: Enum, target: Enum, label: str) -> None:
    if not can_transition(table, current, target):
        logger.warning(f"🚫 Rejected {label} transition {current.value} -> {target.value}")
        raise HTTPException(
            status_code=400,
            detail=f"Cannot change {label} from '{current.value}' to '{target.value}'",
        )


def apply_transition(
    booking,
    status: Optional[BookingStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    admin_payment_status: Optional[AdminPaymentStatus] = None,
) -> None:
    """
    Move a booking to new states after checking every requested change.

    All checks run before any field is written, so a rejected change leaves
    the booking untouched. Same-state writes are accepted as no-ops.
    """
    changes = []
    if status is not None:
        current = BookingStatus(booking.status)
        assert_transition(BOOKING_TRANSITIONS, current, status, "status")
        changes.append(("status", status))
    if payment_status is not None:
        current = PaymentStatus(booking.payment_status)
        assert_transition(PAYMENT_TRANSITIONS, current, payment_status, "payment status")
        changes.append(("payment_status", payment_status))
    if admin_payment_status is not None:
        current = admin_status_of(booking.admin_payment_status)
        assert_transition(
            ADMIN_PAYMENT_TRANSITIONS, current, admin_payment_status, "admin payment status"
        )
        changes.append(("admin_payment_status", admin_payment_status))

    for field, value in changes:
        setattr(booking, field, value.value)
