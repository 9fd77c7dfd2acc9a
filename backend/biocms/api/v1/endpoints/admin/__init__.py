"""
Admin API endpoints for the BioCMS dashboard.
All endpoints require the admin role.
"""
from fastapi import APIRouter

from biocms.api.v1.endpoints.admin import activities, dashboard, users

admin_router = APIRouter(prefix="/admin", tags=["Admin"])

admin_router.include_router(dashboard.router, prefix="/dashboard", tags=["Admin Dashboard"])
admin_router.include_router(users.router, prefix="/users", tags=["Admin Users"])
admin_router.include_router(activities.router, prefix="/activities", tags=["Admin Activities"])
