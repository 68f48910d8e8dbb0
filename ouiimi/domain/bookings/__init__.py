"""Booking domain - Slot reservation, state transitions and cancellation rules"""

from .router import router
from .service import BookingService

__all__ = ["router", "BookingService"]
