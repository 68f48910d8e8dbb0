"""Catalog domain schemas - Services, time slots and staff"""

from datetime import date as date_type
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator, model_validator

from ...security_utils import sanitize_text
from ...shared.validators import normalize_time, validate_min_length

ServiceStatus = Literal["listed", "booked", "completed", "cancelled"]


class AddOn(BaseModel):
    name: str
    cost: float = 0

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return validate_min_length(v, 1, "Add-on name")

    @field_validator("cost")
    @classmethod
    def validate_cost(cls, v):
        if v < 0:
            raise ValueError("Add-on cost cannot be negative")
        return v


class TimeSlotCreate(BaseModel):
    """Schema for a bookable slot; 12-hour inputs like '9:30 AM' are accepted"""

    date: date_type
    startTime: str
    endTime: str
    price: Optional[float] = None
    duration: Optional[int] = None
    staffIds: list[int] = []

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_time(cls, v):
        return normalize_time(v)

    @field_validator("price")
    @classmethod
    def validate_price(cls, v):
        if v is not None and v < 0:
            raise ValueError("Price cannot be negative")
        return v

    @model_validator(mode="after")
    def end_after_start(self):
        if self.endTime <= self.startTime:
            raise ValueError("endTime must be after startTime")
        return self


class TimeSlotsCreate(BaseModel):
    timeSlots: list[TimeSlotCreate]

    @field_validator("timeSlots")
    @classmethod
    def not_empty(cls, v):
        if not v:
            raise ValueError("At least one time slot is required")
        return v


class ServiceCreate(BaseModel):
    businessId: Optional[int] = None
    category: str
    subCategory: Optional[str] = None
    serviceName: str
    duration: Optional[int] = None
    baseCost: float
    description: Optional[str] = None
    address: Optional[str] = None
    addOns: list[AddOn] = []
    staffIds: list[int] = []
    timeSlots: list[TimeSlotCreate] = []

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        return validate_min_length(v, 2, "Category")

    @field_validator("serviceName")
    @classmethod
    def validate_service_name(cls, v):
        return validate_min_length(v, 3, "Service name")

    @field_validator("baseCost")
    @classmethod
    def validate_base_cost(cls, v):
        if v < 0:
            raise ValueError("Base cost cannot be negative")
        return v

    @field_validator("description")
    @classmethod
    def clean_description(cls, v):
        return sanitize_text(v, max_length=5000)


class ServiceUpdate(BaseModel):
    category: Optional[str] = None
    subCategory: Optional[str] = None
    serviceName: Optional[str] = None
    duration: Optional[int] = None
    baseCost: Optional[float] = None
    description: Optional[str] = None
    address: Optional[str] = None
    addOns: Optional[list[AddOn]] = None
    staffIds: Optional[list[int]] = None
    status: Optional[ServiceStatus] = None

    @field_validator("baseCost")
    @classmethod
    def validate_base_cost(cls, v):
        if v is not None and v < 0:
            raise ValueError("Base cost cannot be negative")
        return v

    @field_validator("description")
    @classmethod
    def clean_description(cls, v):
        return sanitize_text(v, max_length=5000)


class TimeSlotResponse(BaseModel):
    id: int
    date: date_type
    startTime: str
    endTime: str
    price: Optional[float] = None
    duration: Optional[int] = None
    staffIds: list[int] = []
    isBooked: bool
    bookingId: Optional[int] = None


class ServiceResponse(BaseModel):
    id: int
    businessId: int
    businessName: Optional[str] = None
    category: str
    subCategory: Optional[str] = None
    serviceName: str
    duration: Optional[int] = None
    baseCost: float
    description: Optional[str] = None
    address: Optional[str] = None
    addOns: list[AddOn] = []
    staffIds: list[int] = []
    status: str
    timeSlots: list[TimeSlotResponse] = []
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class ServiceEnvelope(BaseModel):
    message: Optional[str] = None
    service: ServiceResponse


class StaffCreate(BaseModel):
    businessId: Optional[int] = None
    name: str
    photo: Optional[str] = None
    qualifications: Optional[str] = None
    about: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return validate_min_length(v, 2, "Name")

    @field_validator("qualifications", "about")
    @classmethod
    def clean_text(cls, v):
        return sanitize_text(v)


class StaffUpdate(BaseModel):
    name: Optional[str] = None
    photo: Optional[str] = None
    qualifications: Optional[str] = None
    about: Optional[str] = None
    isActive: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return validate_min_length(v, 2, "Name") if v is not None else v

    @field_validator("qualifications", "about")
    @classmethod
    def clean_text(cls, v):
        return sanitize_text(v)


class StaffResponse(BaseModel):
    id: int
    businessId: int
    name: str
    photo: Optional[str] = None
    qualifications: Optional[str] = None
    about: Optional[str] = None
    isActive: bool
    createdAt: Optional[datetime] = None


class StaffEnvelope(BaseModel):
    message: Optional[str] = None
    staff: StaffResponse


class StaffListResponse(BaseModel):
    staff: list[StaffResponse]
