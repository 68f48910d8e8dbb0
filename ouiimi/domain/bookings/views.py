"""Booking view models - the JSON shapes returned by the API and used in emails"""

from datetime import datetime

from ...models import Booking
from .pricing import effective_platform_fee, service_amount
from .schemas import (
    BookingResponse,
    BusinessSummary,
    ServiceSummary,
    StaffSummary,
    TimeSlotValue,
    UserSummary,
)
from .states import admin_status_of


def slot_end_at(booking: Booking) -> datetime:
    """The moment the booked service ends: slot date combined with its end time"""
    hours, minutes = (int(part) for part in booking.slot_end_time.split(":"))
    return datetime(
        booking.slot_date.year, booking.slot_date.month, booking.slot_date.day, hours, minutes
    )


def build_booking_response(booking: Booking) -> BookingResponse:
    user = booking.user
    business = booking.business
    service = booking.service
    staff = booking.staff

    return BookingResponse(
        id=booking.id,
        bookingNumber=booking.booking_number,
        userId=booking.user_id,
        businessId=booking.business_id,
        serviceId=booking.service_id,
        staffId=booking.staff_id,
        slotId=booking.slot_id,
        timeSlot=TimeSlotValue(
            date=booking.slot_date,
            startTime=booking.slot_start_time,
            endTime=booking.slot_end_time,
        ),
        addOns=booking.add_ons or [],
        totalCost=booking.total_cost,
        depositAmount=booking.deposit_amount,
        remainingAmount=booking.remaining_amount,
        platformFee=effective_platform_fee(booking.platform_fee),
        serviceAmount=service_amount(booking.total_cost, booking.platform_fee),
        status=booking.status,
        paymentStatus=booking.payment_status,
        adminPaymentStatus=admin_status_of(booking.admin_payment_status).value,
        paymentIntentId=booking.payment_intent_id,
        customerNotes=booking.customer_notes,
        businessNotes=booking.business_notes,
        cancelledAt=booking.cancelled_at,
        cancelledBy=booking.cancelled_by,
        cancellationReason=booking.cancellation_reason,
        refundAmount=booking.refund_amount,
        businessPayoutAmount=booking.business_payout_amount,
        confirmedAt=booking.confirmed_at,
        completedAt=booking.completed_at,
        releasedAt=booking.released_at,
        createdAt=booking.created_at,
        updatedAt=booking.updated_at,
        user=UserSummary(id=user.id, fname=user.fname, lname=user.lname, email=user.email)
        if user
        else None,
        business=BusinessSummary(
            id=business.id,
            businessName=business.business_name,
            email=business.email,
            phone=business.phone,
            address=business.address,
        )
        if business
        else None,
        service=ServiceSummary(
            id=service.id,
            serviceName=service.service_name,
            category=service.category,
            address=service.address,
        )
        if service
        else None,
        staff=StaffSummary(id=staff.id, name=staff.name) if staff else None,
    )


def build_email_details(booking: Booking) -> dict:
    """Flat booking facts for email templates"""
    details = build_booking_response(booking).model_dump(mode="json")
    details["serviceName"] = booking.service.service_name if booking.service else ""
    details["businessName"] = booking.business.business_name if booking.business else ""
    return details
