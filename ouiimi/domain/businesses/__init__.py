"""Business domain - Business registration, search and payout details"""

from .router import router
from .service import BusinessService

__all__ = ["router", "BusinessService"]
