"""
Email Service using Resend
Renders MJML templates and sends transactional emails. Booking lifecycle
emails are fire-and-forget: callers go through notify() so a failed send
never blocks the state change that triggered it.
"""

import logging
from collections.abc import Awaitable
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    booking_cancelled_template,
    booking_completed_template,
    booking_confirmed_template,
    booking_request_customer_template,
    new_booking_business_template,
    password_reset_template,
    payment_receipt_template,
    payment_released_template,
    welcome_email_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailDeliveryError(Exception):
    """Raised when an email cannot be rendered or handed to the provider"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    result = mjml_to_html(mjml_content)
    if isinstance(result, dict):
        if result.get("errors"):
            logger.warning(f"MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    return str(result)


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (compiled to HTML here)
        from_address: Optional custom from address

    Returns:
        Resend response dict
    """
    if not RESEND_API_KEY:
        raise EmailDeliveryError("Email service not configured - RESEND_API_KEY missing")

    recipients = [to] if isinstance(to, str) else to
    html_content = compile_mjml_to_html(mjml_content)

    try:
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
    except Exception as e:
        raise EmailDeliveryError(f"Failed to send email: {e}") from e

    logger.info(f"✅ Email '{subject}' sent to {recipients}")
    return response


async def notify(send: Awaitable, description: str) -> bool:
    """Await an email send, logging and swallowing any failure"""
    try:
        await send
        return True
    except Exception as e:
        logger.warning(f"⚠️ Failed to send {description} email: {e}")
        return False


# ============================================
# Account emails
# ============================================


async def send_welcome_email(to: str, user_name: str) -> dict:
    return await send_email(
        to=to, subject="Welcome to ouiimi", mjml_content=welcome_email_template(user_name)
    )


async def send_password_reset_email(to: str, user_name: str, reset_link: str) -> dict:
    return await send_email(
        to=to,
        subject="Reset Your Password - ouiimi",
        mjml_content=password_reset_template(user_name, reset_link),
    )


# ============================================
# Booking lifecycle emails
# ============================================


async def send_booking_request_email(to: str, customer_name: str, details: dict) -> dict:
    """Customer copy of a newly reserved booking"""
    return await send_email(
        to=to,
        subject=f"Booking #{details['bookingNumber']} reserved",
        mjml_content=booking_request_customer_template(customer_name, details),
    )


async def send_new_booking_business_email(
    to: str, business_name: str, customer_name: str, details: dict
) -> dict:
    return await send_email(
        to=to,
        subject=f"New booking #{details['bookingNumber']}",
        mjml_content=new_booking_business_template(business_name, customer_name, details),
    )


async def send_booking_confirmed_email(to: str, customer_name: str, details: dict) -> dict:
    return await send_email(
        to=to,
        subject=f"Booking #{details['bookingNumber']} confirmed",
        mjml_content=booking_confirmed_template(customer_name, details),
    )


async def send_booking_cancelled_customer_email(
    to: str, customer_name: str, cancelled_by: str, details: dict
) -> dict:
    refund = details.get("refundAmount") or 0
    if refund:
        amount_line = f"A refund of ${refund:.2f} of your deposit will be returned to you."
    else:
        amount_line = "No deposit had been paid, so there is nothing to refund."
    return await send_email(
        to=to,
        subject=f"Booking #{details['bookingNumber']} cancelled",
        mjml_content=booking_cancelled_template(customer_name, cancelled_by, details, amount_line),
    )


async def send_booking_cancelled_business_email(
    to: str, business_name: str, cancelled_by: str, details: dict
) -> dict:
    payout = details.get("businessPayoutAmount") or 0
    if payout:
        amount_line = f"You will receive ${payout:.2f} (50% of the deposit) for this cancellation."
    else:
        amount_line = "No cancellation payout applies to this booking."
    return await send_email(
        to=to,
        subject=f"Booking #{details['bookingNumber']} cancelled",
        mjml_content=booking_cancelled_template(business_name, cancelled_by, details, amount_line),
    )


async def send_booking_completed_email(to: str, customer_name: str, details: dict) -> dict:
    return await send_email(
        to=to,
        subject="Your service is complete",
        mjml_content=booking_completed_template(customer_name, details),
    )


async def send_payment_receipt_email(to: str, customer_name: str, details: dict) -> dict:
    return await send_email(
        to=to,
        subject=f"Receipt for booking #{details['bookingNumber']}",
        mjml_content=payment_receipt_template(customer_name, details),
    )


async def send_payment_released_email(to: str, business_name: str, details: dict) -> dict:
    return await send_email(
        to=to,
        subject=f"Payment released for booking #{details['bookingNumber']}",
        mjml_content=payment_released_template(business_name, details),
    )
