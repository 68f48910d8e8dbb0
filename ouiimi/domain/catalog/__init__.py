"""Catalog domain - Service listings, time slots and staff"""

from .router import services_router, staff_router
from .service import CatalogService, StaffService

__all__ = ["services_router", "staff_router", "CatalogService", "StaffService"]
