"""Payment domain schemas - Pydantic models for validation"""

from pydantic import BaseModel, field_validator


class CheckoutRequest(BaseModel):
    bookingId: int


class CheckoutResponse(BaseModel):
    sessionId: str
    url: str


class PaymentIntentRequest(BaseModel):
    bookingId: int


class PaymentIntentResponse(BaseModel):
    clientSecret: str
    bookingId: int


class ConfirmPaymentRequest(BaseModel):
    paymentIntentId: str

    @field_validator("paymentIntentId")
    @classmethod
    def validate_intent_id(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("paymentIntentId is required")
        return v


class VerifySessionRequest(BaseModel):
    sessionId: str
    bookingId: int

    @field_validator("sessionId")
    @classmethod
    def validate_session_id(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("sessionId is required")
        return v


class WebhookAck(BaseModel):
    received: bool = True
