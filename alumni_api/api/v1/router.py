from fastapi import APIRouter
from alumni_api.api.v1.endpoints import admin, announcements, class_groups, events

api_router = APIRouter()

# Public, read-only
api_router.include_router(events.router, prefix="/events", tags=["Events"])
api_router.include_router(announcements.router, prefix="/announcements", tags=["Announcements"])
api_router.include_router(class_groups.router, prefix="/class-groups", tags=["Class Groups"])

# Admin management
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
