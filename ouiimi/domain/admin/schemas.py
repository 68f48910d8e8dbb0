"""Admin domain schemas"""

from pydantic import BaseModel

from ..bookings.schemas import BookingResponse


class PendingReleasesResponse(BaseModel):
    bookings: list[BookingResponse]
    count: int


class ReleasePaymentResponse(BaseModel):
    message: str
    alreadyReleased: bool
    booking: BookingResponse


class BusinessStatusResponse(BaseModel):
    message: str
    businessId: int
    status: str
