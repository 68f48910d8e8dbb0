"""Account domain - Signup, signin, password reset and profiles"""

from .router import auth_router, user_router
from .service import AccountService

__all__ = ["auth_router", "user_router", "AccountService"]
