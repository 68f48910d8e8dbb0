"""
MJML Email Templates
Transactional emails for accounts and the booking lifecycle
"""

from html import escape
from typing import Optional

from .config import FRONTEND_URL

THEME = {
    "primary": "#f97316",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
}

LOGO_URL = f"{FRONTEND_URL}/logo.png"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button href="{cta_url}" background-color="{THEME['primary']}" color="#ffffff"
              font-weight="600" border-radius="8px" padding="18px 40px" font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 20px">
          <mj-column>
            <mj-image src="{LOGO_URL}" alt="ouiimi" width="120px" href="{FRONTEND_URL}" padding="0" />
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="0 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" padding="0 0 16px 0">
              {title}
            </mj-text>
            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              <a href="{FRONTEND_URL}/terms" style="color: #64748b;">Terms of Service</a>
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _paragraphs(*lines: str) -> str:
    return "\n".join(f"<mj-text>{line}</mj-text>" for line in lines if line)


def _booking_summary(details: dict) -> str:
    """Rows shared by every booking email; details come from the booking view"""
    slot = details["timeSlot"]
    rows = [
        ("Booking", f"#{details['bookingNumber']}"),
        ("Service", escape(details["serviceName"])),
        ("Business", escape(details["businessName"])),
        ("Date", f"{slot['date']} {slot['startTime']}-{slot['endTime']}"),
        ("Total", f"${details['totalCost']:.2f}"),
        ("Deposit", f"${details['depositAmount']:.2f}"),
    ]
    body = "<br/>".join(f"<strong>{label}:</strong> {value}" for label, value in rows)
    return f'<mj-text padding="12px 0" color="{THEME["text_muted"]}">{body}</mj-text>'


def welcome_email_template(user_name: str) -> str:
    content = _paragraphs(
        f"Hi {escape(user_name)},",
        "Welcome to ouiimi! Find local services and book a time that suits you.",
    )
    return get_base_template(
        title="Welcome to ouiimi!",
        preview_text="Your account has been created successfully",
        content_sections=content,
        cta_url=FRONTEND_URL,
        cta_label="Start browsing",
    )


def password_reset_template(user_name: str, reset_link: str) -> str:
    content = _paragraphs(
        f"Hi {escape(user_name)},",
        "We received a request to reset your password. This link expires in 15 minutes.",
        "If you didn't request this, you can safely ignore this email.",
    )
    return get_base_template(
        title="Reset Your Password",
        preview_text="Reset your ouiimi password",
        content_sections=content,
        cta_url=reset_link,
        cta_label="Reset Password",
    )


def booking_request_customer_template(customer_name: str, details: dict) -> str:
    content = _paragraphs(
        f"Hi {escape(customer_name)},",
        "Your booking has been reserved. Pay the deposit to confirm it.",
    ) + _booking_summary(details)
    return get_base_template(
        title="Booking Reserved",
        preview_text=f"Booking #{details['bookingNumber']} is reserved",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/bookings/{details['id']}/checkout",
        cta_label="Pay Deposit",
    )


def new_booking_business_template(business_name: str, customer_name: str, details: dict) -> str:
    content = _paragraphs(
        f"Hi {escape(business_name)},",
        f"{escape(customer_name)} has booked one of your services.",
    ) + _booking_summary(details)
    return get_base_template(
        title="New Booking",
        preview_text=f"New booking #{details['bookingNumber']}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/dashboard/bookings",
        cta_label="View Booking",
    )


def booking_confirmed_template(customer_name: str, details: dict) -> str:
    content = _paragraphs(
        f"Hi {escape(customer_name)},",
        "We've received your deposit and your booking is confirmed.",
        f"The remaining ${details['remainingAmount']:.2f} is paid directly to the business.",
    ) + _booking_summary(details)
    return get_base_template(
        title="Booking Confirmed",
        preview_text=f"Booking #{details['bookingNumber']} is confirmed",
        content_sections=content,
    )


def booking_cancelled_template(
    recipient_name: str, cancelled_by: str, details: dict, amount_line: str
) -> str:
    who = "the customer" if cancelled_by == "customer" else "the business"
    content = _paragraphs(
        f"Hi {escape(recipient_name)},",
        f"Booking #{details['bookingNumber']} was cancelled by {who}.",
        amount_line,
        "The platform service fee is non-refundable.",
    ) + _booking_summary(details)
    return get_base_template(
        title="Booking Cancelled",
        preview_text=f"Booking #{details['bookingNumber']} was cancelled",
        content_sections=content,
    )


def booking_completed_template(customer_name: str, details: dict) -> str:
    content = _paragraphs(
        f"Hi {escape(customer_name)},",
        "Your service has been marked as completed. Thanks for booking with ouiimi!",
    ) + _booking_summary(details)
    return get_base_template(
        title="Service Completed",
        preview_text="Thanks for booking with ouiimi",
        content_sections=content,
    )


def payment_receipt_template(customer_name: str, details: dict) -> str:
    content = _paragraphs(
        f"Hi {escape(customer_name)},",
        f"Deposit paid through ouiimi: ${details['depositAmount']:.2f}",
        f"Platform fee: ${details['platformFee']:.2f}",
        f"Paid to the business: ${details['remainingAmount']:.2f}",
    ) + _booking_summary(details)
    return get_base_template(
        title="Payment Receipt",
        preview_text=f"Receipt for booking #{details['bookingNumber']}",
        content_sections=content,
    )


def payment_released_template(business_name: str, details: dict) -> str:
    content = _paragraphs(
        f"Hi {escape(business_name)},",
        f"The service amount of ${details['serviceAmount']:.2f} has been released "
        "and will be transferred to your nominated bank account.",
    ) + _booking_summary(details)
    return get_base_template(
        title="Payment Released",
        preview_text=f"Payment released for booking #{details['bookingNumber']}",
        content_sections=content,
    )
