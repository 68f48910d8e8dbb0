"""Payment domain - Deposit checkout, confirmation and Stripe webhooks"""

from .router import router
from .service import PaymentService
from .stripe_service import StripeGateway, get_stripe_gateway

__all__ = ["router", "PaymentService", "StripeGateway", "get_stripe_gateway"]
