"""Catalog routers - Service listings, time slots and staff endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import (
    ServiceCreate,
    ServiceEnvelope,
    ServiceUpdate,
    StaffCreate,
    StaffEnvelope,
    StaffListResponse,
    StaffResponse,
    StaffUpdate,
    TimeSlotsCreate,
)
from .service import CatalogService, StaffService, build_service_response

logger = logging.getLogger(__name__)

services_router = APIRouter(prefix="/api/services", tags=["Services"])
staff_router = APIRouter(prefix="/api/staff", tags=["Staff"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


def get_staff_service(db: Session = Depends(get_db)) -> StaffService:
    """Dependency injection for StaffService"""
    return StaffService(db)


def build_staff_response(staff) -> StaffResponse:
    return StaffResponse(
        id=staff.id,
        businessId=staff.business_id,
        name=staff.name,
        photo=staff.photo,
        qualifications=staff.qualifications,
        about=staff.about,
        isActive=staff.is_active,
        createdAt=staff.created_at,
    )


# ============================================================================
# SERVICES
# ============================================================================


@services_router.post("", response_model=ServiceEnvelope, status_code=201)
async def create_service(
    data: ServiceCreate,
    current_user: User = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    listing = service.create_service(data, current_user)
    return ServiceEnvelope(message="Service created successfully", service=build_service_response(listing))


@services_router.get("")
async def list_services(
    category: Optional[str] = Query(None),
    subCategory: Optional[str] = Query(None),
    businessId: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: CatalogService = Depends(get_catalog_service),
):
    """Public listing, newest first"""
    return service.list_services(category, subCategory, businessId, status, page, limit)


@services_router.get("/{service_id}", response_model=ServiceEnvelope)
async def get_service(service_id: int, service: CatalogService = Depends(get_catalog_service)):
    return ServiceEnvelope(service=build_service_response(service.get_service(service_id)))


@services_router.put("/{service_id}", response_model=ServiceEnvelope)
async def update_service(
    service_id: int,
    data: ServiceUpdate,
    current_user: User = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    listing = service.update_service(service_id, data, current_user)
    return ServiceEnvelope(message="Service updated successfully", service=build_service_response(listing))


@services_router.delete("/{service_id}")
async def delete_service(
    service_id: int,
    current_user: User = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.delete_service(service_id, current_user)


# ============================================================================
# TIME SLOTS
# ============================================================================


@services_router.post("/{service_id}/time-slots", response_model=ServiceEnvelope, status_code=201)
async def add_time_slots(
    service_id: int,
    data: TimeSlotsCreate,
    current_user: User = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    listing = service.add_time_slots(service_id, data.timeSlots, current_user)
    return ServiceEnvelope(message="Time slots added successfully", service=build_service_response(listing))


@services_router.delete("/{service_id}/time-slots/{slot_id}")
async def delete_time_slot(
    service_id: int,
    slot_id: int,
    current_user: User = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.delete_time_slot(service_id, slot_id, current_user)


# ============================================================================
# STAFF
# ============================================================================


@staff_router.post("", response_model=StaffEnvelope, status_code=201)
async def create_staff(
    data: StaffCreate,
    current_user: User = Depends(get_current_user),
    service: StaffService = Depends(get_staff_service),
):
    staff = service.create_staff(data, current_user)
    return StaffEnvelope(message="Staff member added successfully", staff=build_staff_response(staff))


@staff_router.get("", response_model=StaffListResponse)
async def list_staff(
    businessId: Optional[int] = Query(None),
    isActive: Optional[bool] = Query(None),
    service: StaffService = Depends(get_staff_service),
):
    staff = service.list_staff(businessId, isActive)
    return StaffListResponse(staff=[build_staff_response(s) for s in staff])


@staff_router.get("/{staff_id}", response_model=StaffEnvelope)
async def get_staff(staff_id: int, service: StaffService = Depends(get_staff_service)):
    return StaffEnvelope(staff=build_staff_response(service.get_staff(staff_id)))


@staff_router.put("/{staff_id}", response_model=StaffEnvelope)
async def update_staff(
    staff_id: int,
    data: StaffUpdate,
    current_user: User = Depends(get_current_user),
    service: StaffService = Depends(get_staff_service),
):
    staff = service.update_staff(staff_id, data, current_user)
    return StaffEnvelope(message="Staff member updated successfully", staff=build_staff_response(staff))


@staff_router.delete("/{staff_id}", response_model=StaffEnvelope)
async def deactivate_staff(
    staff_id: int,
    current_user: User = Depends(get_current_user),
    service: StaffService = Depends(get_staff_service),
):
    staff = service.deactivate_staff(staff_id, current_user)
    return StaffEnvelope(message="Staff member deactivated", staff=build_staff_response(staff))
