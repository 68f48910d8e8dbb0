"""Payment router - FastAPI endpoints for deposits and the Stripe webhook"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...config import STRIPE_WEBHOOK_SECRET
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ...webhook_security import verify_stripe_webhook
from ..bookings.schemas import BookingEnvelope
from ..bookings.views import build_booking_response
from .schemas import (
    CheckoutRequest,
    CheckoutResponse,
    ConfirmPaymentRequest,
    PaymentIntentRequest,
    PaymentIntentResponse,
    VerifySessionRequest,
    WebhookAck,
)
from .service import PaymentService
from .stripe_service import StripeGateway, get_stripe_gateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["Payments"])

rate_limit_payments = create_rate_limiter(limit=30, window_seconds=900, key_prefix="payments")


def get_payment_service(
    db: Session = Depends(get_db), gateway: StripeGateway = Depends(get_stripe_gateway)
) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db, gateway)


# ============================================================================
# DEPOSIT PAYMENT
# ============================================================================


@router.post("/create-checkout", response_model=CheckoutResponse)
async def create_checkout(
    data: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
    _: None = Depends(rate_limit_payments),
):
    """Hosted checkout for the booking deposit and platform fee"""
    return service.create_checkout(data.bookingId, current_user)


@router.post("/create-intent", response_model=PaymentIntentResponse)
async def create_intent(
    data: PaymentIntentRequest,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
    _: None = Depends(rate_limit_payments),
):
    return service.create_intent(data.bookingId, current_user)


@router.post("/confirm", response_model=BookingEnvelope)
async def confirm_payment(
    data: ConfirmPaymentRequest,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
    _: None = Depends(rate_limit_payments),
):
    booking = await service.confirm_payment(data.paymentIntentId, current_user)
    return BookingEnvelope(message="Payment confirmed", booking=build_booking_response(booking))


@router.post("/verify-session", response_model=BookingEnvelope)
async def verify_session(
    data: VerifySessionRequest,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
    _: None = Depends(rate_limit_payments),
):
    booking = await service.verify_session(data.sessionId, data.bookingId, current_user)
    return BookingEnvelope(message="Payment confirmed", booking=build_booking_response(booking))


# ============================================================================
# WEBHOOK
# ============================================================================


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(request: Request, service: PaymentService = Depends(get_payment_service)):
    """
    Verify the Stripe signature and process payment events.

    Security:
      - HMAC-SHA256 over "<timestamp>.<raw body>" with constant-time comparison
      - Timestamp tolerance to reject replays
    Once verified the event is always acknowledged; processing failures are logged.
    """
    if not STRIPE_WEBHOOK_SECRET:
        logger.error("❌ STRIPE_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=500, detail="Webhook not configured")

    raw_body = await verify_stripe_webhook(request, STRIPE_WEBHOOK_SECRET)

    try:
        event = json.loads(raw_body.decode("utf-8"))
    except ValueError as e:
        logger.error(f"Failed to parse webhook JSON: {e}")
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    if not isinstance(event, dict):
        logger.error(f"Webhook payload is not a JSON object: {type(event).__name__}")
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    try:
        await service.handle_webhook_event(event)
    except Exception as e:
        service.db.rollback()
        logger.exception(f"❌ Error processing Stripe event {event.get('type')}: {e}")

    return WebhookAck()
