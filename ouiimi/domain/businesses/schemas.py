"""Business domain schemas - Pydantic models for validation"""

import re
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from ...security_utils import sanitize_text
from ...shared.validators import validate_bsb, validate_email, validate_min_length, validate_phone


class BusinessCreate(BaseModel):
    """Schema for registering a business"""

    businessName: str
    email: str
    phone: Optional[str] = None
    address: str
    logo: Optional[str] = None
    story: Optional[str] = None

    @field_validator("businessName")
    @classmethod
    def validate_name(cls, v):
        return validate_min_length(v, 3, "Business name")

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone_field(cls, v):
        return validate_phone(v)

    @field_validator("address")
    @classmethod
    def validate_address(cls, v):
        return validate_min_length(v, 5, "Address")

    @field_validator("story")
    @classmethod
    def clean_story(cls, v):
        return sanitize_text(v, max_length=5000)


class BusinessUpdate(BaseModel):
    """Schema for updating an existing business"""

    businessName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    logo: Optional[str] = None
    story: Optional[str] = None

    @field_validator("businessName")
    @classmethod
    def validate_name(cls, v):
        return validate_min_length(v, 3, "Business name") if v is not None else v

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone_field(cls, v):
        return validate_phone(v)

    @field_validator("story")
    @classmethod
    def clean_story(cls, v):
        return sanitize_text(v, max_length=5000)


class BankDetailsUpdate(BaseModel):
    accountName: str
    bsb: str
    accountNumber: str
    contactNumber: Optional[str] = None

    @field_validator("accountName")
    @classmethod
    def validate_account_name(cls, v):
        return validate_min_length(v, 2, "Account name")

    @field_validator("bsb")
    @classmethod
    def validate_bsb_field(cls, v):
        return validate_bsb(v)

    @field_validator("accountNumber")
    @classmethod
    def validate_account_number(cls, v):
        digits = re.sub(r"\D", "", v)
        if not 6 <= len(digits) <= 10:
            raise ValueError("Account number must be 6 to 10 digits")
        return digits

    @field_validator("contactNumber")
    @classmethod
    def validate_contact(cls, v):
        return validate_phone(v)


class BusinessStatusUpdate(BaseModel):
    status: Literal["pending", "approved", "rejected"]


class OwnerSummary(BaseModel):
    id: int
    fname: str
    lname: str
    email: str


class BusinessResponse(BaseModel):
    """Public business profile; bank details are never part of it"""

    id: int
    userId: int
    businessName: str
    email: str
    phone: Optional[str] = None
    address: str
    logo: Optional[str] = None
    story: Optional[str] = None
    status: str
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    owner: Optional[OwnerSummary] = None


class BankDetailsResponse(BaseModel):
    accountName: Optional[str] = None
    bsb: Optional[str] = None
    accountNumberLast4: Optional[str] = None
    contactNumber: Optional[str] = None


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class BusinessEnvelope(BaseModel):
    message: Optional[str] = None
    business: BusinessResponse


class BusinessSearchResponse(BaseModel):
    businesses: list[BusinessResponse]
    pagination: Pagination
