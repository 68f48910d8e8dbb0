import secrets

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_reset_token():
    """Generate an unguessable token for password reset links"""
    return secrets.token_urlsafe(32)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    fname = Column(String(100), nullable=False)
    lname = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)  # stored lowercased
    username = Column(String(100), unique=True, index=True, nullable=False)  # stored lowercased
    password_hash = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)
    contact_no = Column(String(50), nullable=True)
    pic = Column(String(500), nullable=True)
    is_enabled = Column(Boolean, default=True, nullable=False)
    role = Column(String(20), default="user", nullable=False)  # user, admin
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    business = relationship("Business", back_populates="owner", uselist=False)
    bookings = relationship("Booking", back_populates="user")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class PasswordReset(Base):
    __tablename__ = "password_resets"

    id = Column(String(64), primary_key=True, default=generate_reset_token)
    email = Column(String(255), index=True, nullable=False)
    created_at = Column(DateTime, nullable=False)


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    business_name = Column(String(255), unique=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    address = Column(String(500), nullable=False)
    logo = Column(String(500), nullable=True)
    story = Column(Text, nullable=True)
    status = Column(String(20), default="approved", nullable=False)  # pending, approved, rejected
    # Payout bank details, used for manual transfers after admin release
    bank_account_name = Column(String(255), nullable=True)
    bank_bsb = Column(String(20), nullable=True)
    bank_account_number = Column(String(50), nullable=True)
    bank_contact_number = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="business")
    staff = relationship("Staff", back_populates="business")
    services = relationship("Service", back_populates="business")
    bookings = relationship("Booking", back_populates="business")


class Staff(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    photo = Column(String(500), nullable=True)
    qualifications = Column(Text, nullable=True)
    about = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)  # soft deactivation, never deleted
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    business = relationship("Business", back_populates="staff")


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), index=True, nullable=False)
    category = Column(String(100), index=True, nullable=False)
    sub_category = Column(String(100), nullable=True)
    service_name = Column(String(255), nullable=False)
    duration = Column(Integer, nullable=True)  # minutes
    base_cost = Column(Float, nullable=False, default=0)
    description = Column(Text, nullable=True)
    address = Column(String(500), nullable=True)
    add_ons = Column(JSON, default=list, nullable=False)  # [{"name": str, "cost": float}]
    default_staff_ids = Column(JSON, default=list, nullable=False)
    status = Column(String(20), default="listed", nullable=False)  # listed, booked, completed, cancelled
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    business = relationship("Business", back_populates="services")
    time_slots = relationship(
        "TimeSlot",
        back_populates="service",
        cascade="all, delete-orphan",
        order_by="[TimeSlot.date, TimeSlot.start_time]",
    )


class TimeSlot(Base):
    __tablename__ = "time_slots"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), index=True, nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM, 24-hour
    end_time = Column(String(5), nullable=False)
    price = Column(Float, nullable=True)
    duration = Column(Integer, nullable=True)
    staff_ids = Column(JSON, default=list, nullable=False)
    is_booked = Column(Boolean, default=False, nullable=False)
    booking_id = Column(Integer, nullable=True)

    service = relationship("Service", back_populates="time_slots")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_number = Column(Integer, unique=True, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    business_id = Column(Integer, ForeignKey("businesses.id"), index=True, nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), index=True, nullable=False)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=True)
    slot_id = Column(Integer, ForeignKey("time_slots.id"), nullable=True)

    # Copy of the slot at booking time; later slot edits do not change it
    slot_date = Column(Date, nullable=False)
    slot_start_time = Column(String(5), nullable=False)
    slot_end_time = Column(String(5), nullable=False)

    add_ons = Column(JSON, default=list, nullable=False)
    total_cost = Column(Float, nullable=False)
    deposit_amount = Column(Float, nullable=False)
    remaining_amount = Column(Float, nullable=False)
    platform_fee = Column(Float, nullable=True)

    status = Column(String(20), default="pending", nullable=False, index=True)
    payment_status = Column(String(20), default="unpaid", nullable=False)
    admin_payment_status = Column(String(20), default="pending", nullable=True)
    payment_intent_id = Column(String(255), index=True, nullable=True)

    customer_notes = Column(Text, nullable=True)
    business_notes = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancelled_by = Column(String(20), nullable=True)  # customer, business
    cancellation_reason = Column(Text, nullable=True)
    refund_amount = Column(Float, nullable=True)
    business_payout_amount = Column(Float, nullable=True)
    confirmed_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    released_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="bookings")
    business = relationship("Business", back_populates="bookings")
    service = relationship("Service")
    staff = relationship("Staff")
