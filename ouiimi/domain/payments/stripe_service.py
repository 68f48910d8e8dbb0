"""Stripe service - Thin wrapper around the Stripe SDK for checkout and payment intents"""

import logging
from typing import Optional

import stripe

from ...config import STRIPE_SECRET_KEY

logger = logging.getLogger(__name__)


class StripeGateway:
    """Service for Stripe API operations"""

    def __init__(self, api_key: Optional[str] = STRIPE_SECRET_KEY):
        self.api_key = api_key
        if not self.api_key:
            logger.warning("STRIPE_SECRET_KEY not set; payment endpoints will fail until configured")

    def is_available(self) -> bool:
        """Check if Stripe is configured"""
        return bool(self.api_key)

    def create_checkout_session(self, **params):
        session = stripe.checkout.Session.create(api_key=self.api_key, **params)
        logger.info(f"💳 Stripe checkout session created: {session.id}")
        return session

    def retrieve_checkout_session(self, session_id: str):
        return stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)

    def create_payment_intent(self, amount: int, currency: str, metadata: dict):
        intent = stripe.PaymentIntent.create(
            api_key=self.api_key,
            amount=amount,
            currency=currency,
            automatic_payment_methods={"enabled": True},
            metadata=metadata,
        )
        logger.info(f"💳 Stripe payment intent created: {intent.id}")
        return intent

    def retrieve_payment_intent(self, payment_intent_id: str):
        return stripe.PaymentIntent.retrieve(payment_intent_id, api_key=self.api_key)


# Global gateway instance
stripe_gateway = StripeGateway()


def get_stripe_gateway() -> StripeGateway:
    """Dependency injection for the Stripe gateway"""
    return stripe_gateway
