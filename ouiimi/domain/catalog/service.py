"""Catalog service - Business logic for services, time slots and staff"""

import logging
import math
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import build_listing_key, cache, invalidate_service_listings
from ...models import Business, Service, Staff, TimeSlot, User
from ..bookings.repository import BookingRepository
from .repository import CatalogRepository
from .schemas import (
    AddOn,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
    StaffCreate,
    StaffUpdate,
    TimeSlotCreate,
    TimeSlotResponse,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def build_slot_response(slot: TimeSlot) -> TimeSlotResponse:
    return TimeSlotResponse(
        id=slot.id,
        date=slot.date,
        startTime=slot.start_time,
        endTime=slot.end_time,
        price=slot.price,
        duration=slot.duration,
        staffIds=slot.staff_ids or [],
        isBooked=slot.is_booked,
        bookingId=slot.booking_id,
    )


def build_service_response(service: Service) -> ServiceResponse:
    return ServiceResponse(
        id=service.id,
        businessId=service.business_id,
        businessName=service.business.business_name if service.business else None,
        category=service.category,
        subCategory=service.sub_category,
        serviceName=service.service_name,
        duration=service.duration,
        baseCost=service.base_cost,
        description=service.description,
        address=service.address,
        addOns=[AddOn(**a) for a in (service.add_ons or [])],
        staffIds=service.default_staff_ids or [],
        status=service.status,
        timeSlots=[build_slot_response(s) for s in service.time_slots],
        createdAt=service.created_at,
        updatedAt=service.updated_at,
    )


def _resolve_owned_business(db: Session, user: User, business_id: Optional[int]) -> Business:
    """The caller's business, or the requested one when it is theirs"""
    if business_id is None:
        business = db.query(Business).filter(Business.user_id == user.id).first()
        if not business:
            raise HTTPException(status_code=400, detail="You need to register a business first")
    else:
        business = db.query(Business).filter(Business.id == business_id).first()
        if not business:
            raise HTTPException(status_code=404, detail="Business not found")
    if business.user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=403, detail="You do not own this business")
    return business


class CatalogService:
    """Service layer for service listings and their time slots"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CatalogRepository()

    def get_service(self, service_id: int) -> Service:
        service = self.repo.get_service(self.db, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        return service

    def get_owned_service(self, service_id: int, user: User) -> Service:
        service = self.get_service(service_id)
        if service.business.user_id != user.id and not user.is_admin:
            raise HTTPException(status_code=403, detail="You do not own this service")
        return service

    def _valid_staff_ids(self, business_id: int, staff_ids: list[int]) -> list[int]:
        valid = self.repo.staff_ids_for_business(self.db, business_id, staff_ids)
        unknown = [s for s in staff_ids if s not in valid]
        if unknown:
            raise HTTPException(status_code=400, detail=f"Invalid staff members: {unknown}")
        return list(dict.fromkeys(staff_ids))

    def _add_slots(self, service: Service, slots: list[TimeSlotCreate]) -> list[TimeSlot]:
        seen = set()
        created = []
        for slot in slots:
            key = (slot.date, slot.startTime)
            if key in seen or self.repo.slot_exists(self.db, service.id, slot.date, slot.startTime):
                raise HTTPException(
                    status_code=400,
                    detail=f"A time slot already exists on {slot.date} at {slot.startTime}",
                )
            seen.add(key)
            staff_ids = (
                self._valid_staff_ids(service.business_id, slot.staffIds)
                if slot.staffIds
                else list(service.default_staff_ids or [])
            )
            created.append(
                TimeSlot(
                    service_id=service.id,
                    date=slot.date,
                    start_time=slot.startTime,
                    end_time=slot.endTime,
                    price=slot.price if slot.price is not None else service.base_cost,
                    duration=slot.duration or service.duration,
                    staff_ids=staff_ids,
                    is_booked=False,
                )
            )
        self.db.add_all(created)
        return created

    def create_service(self, data: ServiceCreate, user: User) -> Service:
        business = _resolve_owned_business(self.db, user, data.businessId)
        if business.status != "approved":
            raise HTTPException(
                status_code=403, detail="Your business must be approved before listing services"
            )

        service = self.repo.create_service(
            self.db,
            business_id=business.id,
            category=data.category,
            sub_category=data.subCategory,
            service_name=data.serviceName,
            duration=data.duration,
            base_cost=data.baseCost,
            description=data.description,
            address=data.address or business.address,
            add_ons=[a.model_dump() for a in data.addOns],
            default_staff_ids=self._valid_staff_ids(business.id, data.staffIds),
            status="listed",
        )
        self._add_slots(service, data.timeSlots)
        self.db.commit()
        invalidate_service_listings()
        logger.info(f"✅ Service {service.id} listed by business {business.id}")
        return self.get_service(service.id)

    def list_services(
        self,
        category: Optional[str] = None,
        sub_category: Optional[str] = None,
        business_id: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        status = status or "listed"
        key = build_listing_key(
            "services:list",
            category=category,
            subCategory=sub_category,
            businessId=business_id,
            status=status,
            page=page,
            limit=limit,
        )

        def fetch() -> dict:
            services, total = self.repo.list_services(
                self.db, category, sub_category, business_id, status, page, limit
            )
            return {
                "services": [build_service_response(s).model_dump(mode="json") for s in services],
                "pagination": {
                    "total": total,
                    "page": page,
                    "limit": limit,
                    "pages": math.ceil(total / limit) if total else 0,
                },
            }

        return cache.get_or_fetch(key, fetch)

    def update_service(self, service_id: int, data: ServiceUpdate, user: User) -> Service:
        service = self.get_owned_service(service_id, user)

        updates = {
            "category": data.category,
            "sub_category": data.subCategory,
            "service_name": data.serviceName,
            "duration": data.duration,
            "base_cost": data.baseCost,
            "description": data.description,
            "address": data.address,
            "status": data.status,
        }
        for key, value in updates.items():
            if value is not None:
                setattr(service, key, value)
        if data.addOns is not None:
            service.add_ons = [a.model_dump() for a in data.addOns]
        if data.staffIds is not None:
            service.default_staff_ids = self._valid_staff_ids(service.business_id, data.staffIds)

        self.db.commit()
        invalidate_service_listings()
        return self.get_service(service.id)

    def delete_service(self, service_id: int, user: User) -> dict:
        """Withdraw a service from listings; refused while bookings are still open"""
        service = self.get_owned_service(service_id, user)
        if BookingRepository.count_unfinished_for_service(self.db, service.id):
            raise HTTPException(
                status_code=400,
                detail="This service has upcoming bookings. Cancel or complete them first.",
            )
        service.status = "cancelled"
        self.db.commit()
        invalidate_service_listings()
        logger.info(f"🗑️ Service {service.id} withdrawn by user {user.id}")
        return {"message": "Service deleted successfully"}

    def add_time_slots(self, service_id: int, slots: list[TimeSlotCreate], user: User) -> Service:
        service = self.get_owned_service(service_id, user)
        created = self._add_slots(service, slots)
        self.db.commit()
        invalidate_service_listings()
        logger.info(f"📅 Added {len(created)} time slots to service {service.id}")
        return self.get_service(service.id)

    def delete_time_slot(self, service_id: int, slot_id: int, user: User) -> dict:
        self.get_owned_service(service_id, user)
        slot = self.repo.get_slot(self.db, service_id, slot_id)
        if not slot:
            raise HTTPException(status_code=404, detail="Time slot not found")
        if slot.is_booked or self.repo.slot_has_open_booking(self.db, slot.id):
            raise HTTPException(status_code=409, detail="Cannot delete a time slot that is booked")
        self.repo.detach_bookings_from_slot(self.db, slot.id)
        self.db.delete(slot)
        self.db.commit()
        invalidate_service_listings()
        return {"message": "Time slot deleted successfully"}


class StaffService:
    """Service layer for business staff"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CatalogRepository()

    def get_staff(self, staff_id: int) -> Staff:
        staff = self.repo.get_staff(self.db, staff_id)
        if not staff:
            raise HTTPException(status_code=404, detail="Staff member not found")
        return staff

    def get_owned_staff(self, staff_id: int, user: User) -> Staff:
        staff = self.get_staff(staff_id)
        if staff.business.user_id != user.id and not user.is_admin:
            raise HTTPException(status_code=403, detail="You do not manage this staff member")
        return staff

    def list_staff(self, business_id: Optional[int], is_active: Optional[bool]) -> list[Staff]:
        if business_id is None:
            raise HTTPException(status_code=400, detail="businessId is required")
        return self.repo.list_staff(self.db, business_id, is_active)

    def create_staff(self, data: StaffCreate, user: User) -> Staff:
        business = _resolve_owned_business(self.db, user, data.businessId)
        staff = Staff(
            business_id=business.id,
            name=data.name,
            photo=data.photo,
            qualifications=data.qualifications,
            about=data.about,
            is_active=True,
        )
        self.db.add(staff)
        self.db.commit()
        self.db.refresh(staff)
        logger.info(f"✅ Staff {staff.id} added to business {business.id}")
        return staff

    def update_staff(self, staff_id: int, data: StaffUpdate, user: User) -> Staff:
        staff = self.get_owned_staff(staff_id, user)
        updates = {
            "name": data.name,
            "photo": data.photo,
            "qualifications": data.qualifications,
            "about": data.about,
            "is_active": data.isActive,
        }
        for key, value in updates.items():
            if value is not None:
                setattr(staff, key, value)
        self.db.commit()
        self.db.refresh(staff)
        return staff

    def deactivate_staff(self, staff_id: int, user: User) -> Staff:
        """Staff are never hard-deleted; bookings keep referencing them"""
        staff = self.get_owned_staff(staff_id, user)
        staff.is_active = False
        self.db.commit()
        self.db.refresh(staff)
        logger.info(f"🚫 Staff {staff.id} deactivated")
        return staff
