"""Payment service - Deposit checkout, confirmation and webhook processing"""

import logging
from typing import Optional

import stripe
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import FRONTEND_URL, STRIPE_CURRENCY
from ...models import Booking, User
from ..bookings.pricing import checkout_total, effective_platform_fee, to_minor_units
from ..bookings.repository import BookingRepository
from ..bookings.service import BookingService
from ..bookings.states import BookingStatus, PaymentStatus
from .stripe_service import StripeGateway

logger = logging.getLogger(__name__)

REUSABLE_INTENT_STATUSES = {
    "requires_payment_method",
    "requires_confirmation",
    "requires_action",
    "processing",
}


def _metadata(obj) -> dict:
    if isinstance(obj, dict):
        return obj.get("metadata") or {}
    return getattr(obj, "metadata", None) or {}


def _metadata_booking_id(metadata: dict) -> Optional[int]:
    value = metadata.get("bookingId")
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        logger.warning(f"⚠️ Ignoring non-numeric bookingId in payment metadata: {value!r}")
        return None


class PaymentService:
    """Service layer for payment business logic"""

    def __init__(self, db: Session, gateway: StripeGateway):
        self.db = db
        self.gateway = gateway
        self.repo = BookingRepository()
        self.bookings = BookingService(db)

    def _require_gateway(self) -> None:
        if not self.gateway.is_available():
            raise HTTPException(status_code=503, detail="Payment processing is not configured")

    def _payable_booking(self, booking_id: int, user: User) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        if booking.user_id != user.id:
            raise HTTPException(status_code=403, detail="You can only pay for your own bookings")
        if (
            booking.status != BookingStatus.PENDING.value
            or booking.payment_status != PaymentStatus.UNPAID.value
        ):
            raise HTTPException(status_code=400, detail="This booking is not awaiting payment")
        if booking.platform_fee is None:
            booking.platform_fee = effective_platform_fee(None)
        return booking

    @staticmethod
    def _booking_metadata(booking: Booking) -> dict:
        return {
            "bookingId": str(booking.id),
            "userId": str(booking.user_id),
            "businessId": str(booking.business_id),
            "serviceId": str(booking.service_id),
        }

    def _find_booking(self, reference_ids: list, metadata: dict) -> Optional[Booking]:
        for reference in reference_ids:
            if reference:
                booking = self.repo.get_by_payment_intent(self.db, reference)
                if booking:
                    return booking
        booking_id = _metadata_booking_id(metadata)
        if booking_id is not None:
            return self.repo.get_booking(self.db, booking_id)
        return None

    # ========================================================================
    # CHECKOUT
    # ========================================================================

    def create_checkout(self, booking_id: int, user: User) -> dict:
        """Create a hosted checkout session for the deposit plus the platform fee"""
        self._require_gateway()
        booking = self._payable_booking(booking_id, user)
        service_name = booking.service.service_name
        metadata = self._booking_metadata(booking)

        def line_item(name: str, description: str, amount: float) -> dict:
            return {
                "price_data": {
                    "currency": STRIPE_CURRENCY,
                    "product_data": {"name": name, "description": description},
                    "unit_amount": to_minor_units(amount),
                },
                "quantity": 1,
            }

        try:
            session = self.gateway.create_checkout_session(
                mode="payment",
                payment_method_types=["card"],
                customer_email=booking.user.email,
                line_items=[
                    line_item(
                        f"{service_name} - Deposit",
                        f"Booking #{booking.booking_number} deposit",
                        booking.deposit_amount,
                    ),
                    line_item("Platform fee", "Non-refundable service fee", booking.platform_fee),
                ],
                success_url=(
                    f"{FRONTEND_URL}/bookings/{booking.id}/confirm"
                    "?session_id={CHECKOUT_SESSION_ID}"
                ),
                cancel_url=f"{FRONTEND_URL}/bookings/{booking.id}/checkout",
                metadata=metadata,
                payment_intent_data={"metadata": metadata},
            )
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe checkout failed for booking {booking.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create checkout session") from e

        booking.payment_intent_id = session.id
        self.db.commit()
        return {"sessionId": session.id, "url": session.url}

    def create_intent(self, booking_id: int, user: User) -> dict:
        """Return a client secret, reusing the booking's open payment intent when possible"""
        self._require_gateway()
        booking = self._payable_booking(booking_id, user)

        if booking.payment_intent_id and booking.payment_intent_id.startswith("pi_"):
            try:
                existing = self.gateway.retrieve_payment_intent(booking.payment_intent_id)
                if existing.status in REUSABLE_INTENT_STATUSES:
                    logger.info(f"🔄 Reusing payment intent {existing.id} for booking {booking.id}")
                    return {"clientSecret": existing.client_secret, "bookingId": booking.id}
            except stripe.StripeError as e:
                logger.warning(f"⚠️ Could not retrieve payment intent {booking.payment_intent_id}: {e}")

        amount = to_minor_units(checkout_total(booking.deposit_amount, booking.platform_fee))
        try:
            intent = self.gateway.create_payment_intent(
                amount=amount, currency=STRIPE_CURRENCY, metadata=self._booking_metadata(booking)
            )
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe payment intent failed for booking {booking.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create payment intent") from e

        booking.payment_intent_id = intent.id
        self.db.commit()
        return {"clientSecret": intent.client_secret, "bookingId": booking.id}

    # ========================================================================
    # CONFIRMATION
    # ========================================================================

    def _check_payer(self, booking: Booking, user: User) -> None:
        if booking.user_id != user.id and not user.is_admin:
            raise HTTPException(status_code=403, detail="You do not have access to this booking")

    async def _confirm(self, booking: Booking, source: str) -> Booking:
        await self.bookings.confirm_deposit(booking, source)
        if booking.status != BookingStatus.CONFIRMED.value:
            raise HTTPException(status_code=409, detail="This booking can no longer be confirmed")
        return self.repo.get_booking(self.db, booking.id)

    async def confirm_payment(self, payment_intent_id: str, user: User) -> Booking:
        """Client-side confirmation after the payment form reports success"""
        self._require_gateway()
        try:
            intent = self.gateway.retrieve_payment_intent(payment_intent_id)
        except stripe.StripeError as e:
            logger.error(f"❌ Could not retrieve payment intent {payment_intent_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to confirm payment") from e

        if intent.status != "succeeded":
            raise HTTPException(status_code=400, detail="Payment has not been completed")

        booking = self._find_booking([intent.id], _metadata(intent))
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        self._check_payer(booking, user)

        if booking.payment_intent_id != intent.id:
            booking.payment_intent_id = intent.id
            self.db.commit()
        return await self._confirm(booking, "client confirmation")

    async def verify_session(self, session_id: str, booking_id: int, user: User) -> Booking:
        """Confirm a booking on return from hosted checkout"""
        self._require_gateway()
        try:
            session = self.gateway.retrieve_checkout_session(session_id)
        except stripe.StripeError as e:
            logger.error(f"❌ Could not retrieve checkout session {session_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to verify payment session") from e

        if session.payment_status != "paid":
            raise HTTPException(status_code=400, detail="Payment has not been completed")

        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        self._check_payer(booking, user)

        session_booking_id = _metadata_booking_id(_metadata(session))
        if session_booking_id is not None and session_booking_id != booking.id:
            raise HTTPException(status_code=400, detail="Payment session does not match this booking")

        if session.payment_intent:
            booking.payment_intent_id = session.payment_intent
            self.db.commit()
        return await self._confirm(booking, "checkout return")

    # ========================================================================
    # WEBHOOK
    # ========================================================================

    async def handle_webhook_event(self, event: dict) -> None:
        event_type = event.get("type")
        obj = (event.get("data") or {}).get("object") or {}
        logger.info(f"🔔 Stripe webhook received: type={event_type} id={event.get('id')}")

        if event_type == "payment_intent.succeeded":
            booking = self._find_booking([obj.get("id")], _metadata(obj))
            await self._confirm_from_webhook(booking, event_type, obj.get("id"))

        elif event_type == "checkout.session.completed":
            if obj.get("payment_status") not in (None, "paid"):
                logger.info(
                    f"⏳ Checkout session {obj.get('id')} completed without payment "
                    f"(payment_status={obj.get('payment_status')})"
                )
                return
            booking = self._find_booking(
                [obj.get("id"), obj.get("payment_intent")], _metadata(obj)
            )
            if booking and obj.get("payment_intent"):
                booking.payment_intent_id = obj.get("payment_intent")
                self.db.commit()
            await self._confirm_from_webhook(booking, event_type, obj.get("id"))

        elif event_type in ("payment_intent.payment_failed", "payment_intent.canceled"):
            error = (obj.get("last_payment_error") or {}).get("message")
            logger.warning(
                f"⚠️ {event_type} for intent {obj.get('id')} "
                f"(bookingId={_metadata(obj).get('bookingId')}): {error}"
            )

        else:
            logger.info(f"ℹ️ Unhandled Stripe event type: {event_type}")

    async def _confirm_from_webhook(
        self, booking: Optional[Booking], event_type: str, reference: Optional[str]
    ) -> None:
        if not booking:
            logger.warning(f"⚠️ {event_type}: no booking found for {reference}")
            return
        await self.bookings.confirm_deposit(booking, f"webhook {event_type}")
