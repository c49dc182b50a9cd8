"""
API v1 router aggregator.

All v1 routes are registered here.
"""

from fastapi import APIRouter

from filegate.features.activity.router import router as activity_router
from filegate.features.files.router import router as files_router
from filegate.features.tenants.router import router as tenants_router

# V1 API router
v1_router = APIRouter(prefix="/v1")

# Register all feature routers
v1_router.include_router(tenants_router)
v1_router.include_router(files_router)
v1_router.include_router(activity_router)
