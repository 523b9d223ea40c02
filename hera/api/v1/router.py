from fastapi import APIRouter

from hera.api.v1.endpoints import admin, clinics, legal_info, notifications

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
api_router.include_router(legal_info.router, prefix="/legal-info", tags=["Legal Info"])
api_router.include_router(clinics.router, prefix="/clinics", tags=["Clinics"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])

__all__ = ["api_router"]
