"""Booking domain schemas - Pydantic models for validation"""

from datetime import date as date_type
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator, model_validator

from ...security_utils import sanitize_text
from ...shared.validators import normalize_time


class TimeSlotValue(BaseModel):
    """A slot copied into a booking: {date, startTime, endTime}"""

    date: date_type
    startTime: str
    endTime: str

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_time(cls, v):
        return normalize_time(v)


class AddOnSelection(BaseModel):
    """Chosen add-on; the cost is always taken from the service, not the client"""

    name: str
    cost: Optional[float] = None


class BookingCreate(BaseModel):
    userId: Optional[int] = None
    serviceId: int
    slotId: Optional[int] = None
    timeSlot: Optional[TimeSlotValue] = None
    staffId: Optional[int] = None
    addOns: list[AddOnSelection] = []
    customerNotes: Optional[str] = None

    @field_validator("customerNotes")
    @classmethod
    def clean_notes(cls, v):
        return sanitize_text(v)

    @model_validator(mode="after")
    def require_slot(self):
        if self.slotId is None and self.timeSlot is None:
            raise ValueError("Either slotId or timeSlot is required")
        return self


class BookingUpdate(BaseModel):
    status: Optional[Literal["completed", "cancelled"]] = None
    cancelledBy: Optional[Literal["customer", "business"]] = None
    cancellationReason: Optional[str] = None
    businessNotes: Optional[str] = None
    customerNotes: Optional[str] = None
    slotId: Optional[int] = None

    @field_validator("cancellationReason", "businessNotes", "customerNotes")
    @classmethod
    def clean_text(cls, v):
        return sanitize_text(v)

    @model_validator(mode="after")
    def require_cancelled_by(self):
        if self.status == "cancelled" and not self.cancelledBy:
            raise ValueError("cancelledBy is required when cancelling a booking")
        return self


class UserSummary(BaseModel):
    id: int
    fname: str
    lname: str
    email: str


class BusinessSummary(BaseModel):
    id: int
    businessName: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None


class ServiceSummary(BaseModel):
    id: int
    serviceName: str
    category: str
    address: Optional[str] = None


class StaffSummary(BaseModel):
    id: int
    name: str


class BookingResponse(BaseModel):
    """
    Booking representation consumed by the confirmation page and dashboards.

    Reference ids are always plain ids; the populated views travel in their
    own fields (user, business, service, staff).
    """

    id: int
    bookingNumber: int
    userId: int
    businessId: int
    serviceId: int
    staffId: Optional[int] = None
    slotId: Optional[int] = None
    timeSlot: TimeSlotValue
    addOns: list[dict] = []
    totalCost: float
    depositAmount: float
    remainingAmount: float
    platformFee: float
    serviceAmount: float
    status: str
    paymentStatus: str
    adminPaymentStatus: str
    paymentIntentId: Optional[str] = None
    customerNotes: Optional[str] = None
    businessNotes: Optional[str] = None
    cancelledAt: Optional[datetime] = None
    cancelledBy: Optional[str] = None
    cancellationReason: Optional[str] = None
    refundAmount: Optional[float] = None
    businessPayoutAmount: Optional[float] = None
    confirmedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    releasedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    user: Optional[UserSummary] = None
    business: Optional[BusinessSummary] = None
    service: Optional[ServiceSummary] = None
    staff: Optional[StaffSummary] = None


class BookingEnvelope(BaseModel):
    message: Optional[str] = None
    booking: BookingResponse


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
