# activity_service/api/v1/api.py

from fastapi import APIRouter
from activity_service.api.v1.endpoints import activities, admin, health

# This is the main router for the v1 API.
api_router = APIRouter()

api_router.include_router(health.router)
# Admin routes first so "/activities/admin/..." is not read as an activity id.
api_router.include_router(admin.router)
api_router.include_router(activities.router)
