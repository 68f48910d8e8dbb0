"""Account domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ValidationInfo, field_validator

from ...shared.validators import validate_email, validate_min_length, validate_phone

MIN_PASSWORD_LENGTH = 8


def _check_password(v: str) -> str:
    if len(v) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return v


class SignupRequest(BaseModel):
    fname: str
    lname: str
    username: str
    email: str
    password: str
    address: Optional[str] = None
    contactNo: Optional[str] = None

    @field_validator("fname")
    @classmethod
    def validate_fname(cls, v):
        return validate_min_length(v, 3, "First name")

    @field_validator("lname")
    @classmethod
    def validate_lname(cls, v):
        return validate_min_length(v, 3, "Last name")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        return validate_min_length(v, 3, "Username").lower()

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return _check_password(v)

    @field_validator("contactNo")
    @classmethod
    def validate_contact(cls, v):
        return validate_phone(v)


class SigninRequest(BaseModel):
    """username accepts either the username or the email address"""

    username: str
    password: str

    @field_validator("username")
    @classmethod
    def normalize_identifier(cls, v):
        v = v.strip().lower()
        if not v:
            raise ValueError("Username or email is required")
        return v


class ForgotPasswordRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)


class ResetPasswordRequest(BaseModel):
    email: str
    token: str
    password: str
    confirmPassword: str

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return _check_password(v)

    @field_validator("confirmPassword")
    @classmethod
    def passwords_match(cls, v, info: ValidationInfo):
        if "password" in info.data and v != info.data["password"]:
            raise ValueError("Passwords don't match")
        return v


class ProfileUpdate(BaseModel):
    fname: Optional[str] = None
    lname: Optional[str] = None
    address: Optional[str] = None
    contactNo: Optional[str] = None
    pic: Optional[str] = None

    @field_validator("fname", "lname")
    @classmethod
    def validate_names(cls, v, info: ValidationInfo):
        if v is None:
            return v
        label = "First name" if info.field_name == "fname" else "Last name"
        return validate_min_length(v, 3, label)

    @field_validator("contactNo")
    @classmethod
    def validate_contact(cls, v):
        return validate_phone(v)


class UserResponse(BaseModel):
    id: int
    fname: str
    lname: str
    email: str
    username: str
    address: Optional[str] = None
    contactNo: Optional[str] = None
    pic: Optional[str] = None
    role: str = "user"
    createdAt: Optional[datetime] = None


class AuthUserResponse(UserResponse):
    token: str


class AuthResponse(BaseModel):
    message: str
    user: AuthUserResponse


class UserEnvelope(BaseModel):
    message: Optional[str] = None
    user: UserResponse
