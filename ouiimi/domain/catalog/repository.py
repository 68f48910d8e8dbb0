"""Catalog repository - Database operations for services, slots and staff"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import Booking, Business, Service, Staff, TimeSlot


class CatalogRepository:
    """Repository for service, time slot and staff database operations"""

    @staticmethod
    def get_service(db: Session, service_id: int) -> Optional[Service]:
        return (
            db.query(Service)
            .options(joinedload(Service.business), selectinload(Service.time_slots))
            .filter(Service.id == service_id)
            .first()
        )

    @staticmethod
    def list_services(
        db: Session,
        category: Optional[str] = None,
        sub_category: Optional[str] = None,
        business_id: Optional[int] = None,
        status: str = "listed",
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Service], int]:
        """Services newest first; without a business filter only approved businesses show"""
        query = (
            db.query(Service)
            .join(Business, Service.business_id == Business.id)
            .options(joinedload(Service.business), selectinload(Service.time_slots))
            .filter(Service.status == status)
        )
        if category:
            query = query.filter(func.lower(Service.category) == category.lower())
        if sub_category:
            query = query.filter(func.lower(Service.sub_category) == sub_category.lower())
        if business_id is not None:
            query = query.filter(Service.business_id == business_id)
        else:
            query = query.filter(Business.status == "approved")

        total = query.count()
        services = (
            query.order_by(Service.created_at.desc(), Service.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return services, total

    @staticmethod
    def create_service(db: Session, **service_data) -> Service:
        service = Service(**service_data)
        db.add(service)
        db.flush()
        return service

    @staticmethod
    def slot_exists(db: Session, service_id: int, slot_date: date, start_time: str) -> bool:
        query = db.query(TimeSlot.id).filter(
            TimeSlot.service_id == service_id,
            TimeSlot.date == slot_date,
            TimeSlot.start_time == start_time,
        )
        return db.query(query.exists()).scalar()

    @staticmethod
    def get_slot(db: Session, service_id: int, slot_id: int) -> Optional[TimeSlot]:
        return (
            db.query(TimeSlot)
            .filter(TimeSlot.id == slot_id, TimeSlot.service_id == service_id)
            .first()
        )

    @staticmethod
    def slot_has_open_booking(db: Session, slot_id: int) -> bool:
        query = db.query(Booking.id).filter(
            Booking.slot_id == slot_id,
            Booking.status.in_(("pending", "confirmed")),
        )
        return db.query(query.exists()).scalar()

    @staticmethod
    def detach_bookings_from_slot(db: Session, slot_id: int) -> int:
        """Finished bookings keep their copied date and times; only the slot link goes"""
        return (
            db.query(Booking)
            .filter(Booking.slot_id == slot_id)
            .update({Booking.slot_id: None}, synchronize_session=False)
        )

    @staticmethod
    def get_staff(db: Session, staff_id: int) -> Optional[Staff]:
        return db.query(Staff).filter(Staff.id == staff_id).first()

    @staticmethod
    def list_staff(db: Session, business_id: int, is_active: Optional[bool] = None) -> list[Staff]:
        query = db.query(Staff).filter(Staff.business_id == business_id)
        if is_active is not None:
            query = query.filter(Staff.is_active == is_active)
        return query.order_by(Staff.name.asc()).all()

    @staticmethod
    def staff_ids_for_business(db: Session, business_id: int, staff_ids: list[int]) -> set[int]:
        if not staff_ids:
            return set()
        rows = (
            db.query(Staff.id)
            .filter(Staff.business_id == business_id, Staff.id.in_(staff_ids), Staff.is_active.is_(True))
            .all()
        )
        return {row[0] for row in rows}
