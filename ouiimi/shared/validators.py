"""Shared validation utilities"""

import re
from typing import Optional

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
TIME_12H_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})\s*([AaPp][Mm])$")
TIME_24H_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()
    if not re.match(EMAIL_PATTERN, email):
        raise ValueError("Invalid email address")
    return email


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """Accept international or local numbers of 8-15 digits, keep a leading +"""
    if not phone:
        return phone

    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)
    if not 8 <= len(digits) <= 15:
        raise ValueError("Phone number must contain 8 to 15 digits")
    return f"+{digits}" if phone.startswith("+") else digits


def validate_min_length(value: str, minimum: int, label: str) -> str:
    value = value.strip()
    if len(value) < minimum:
        raise ValueError(f"{label} must be at least {minimum} characters")
    return value


def normalize_time(value: str) -> str:
    """
    Normalize a clock time to 24-hour HH:MM.

    Accepts "14:30", "9:05", "9:30 AM" and "12:00 pm".

    Raises:
        ValueError: If the value is not a valid time
    """
    value = value.strip()

    match = TIME_12H_PATTERN.match(value)
    if match:
        hours, minutes, meridiem = int(match.group(1)), int(match.group(2)), match.group(3).upper()
        if not 1 <= hours <= 12:
            raise ValueError(f"Invalid time: {value}")
        if meridiem == "AM":
            hours = 0 if hours == 12 else hours
        else:
            hours = 12 if hours == 12 else hours + 12
    else:
        match = TIME_24H_PATTERN.match(value)
        if not match:
            raise ValueError(f"Invalid time: {value}")
        hours, minutes = int(match.group(1)), int(match.group(2))

    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time: {value}")
    return f"{hours:02d}:{minutes:02d}"


def validate_bsb(bsb: str) -> str:
    """Normalize an Australian BSB to XXX-XXX"""
    digits = re.sub(r"\D", "", bsb)
    if len(digits) != 6:
        raise ValueError("BSB must be 6 digits")
    return f"{digits[:3]}-{digits[3:]}"
