"""Admin domain - Payment release and business moderation"""

from .router import router
from .service import AdminService

__all__ = ["router", "AdminService"]
