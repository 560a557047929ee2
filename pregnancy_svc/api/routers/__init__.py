"""
Routers: probes, assessments, patient records, chat, users and the admin console.
"""
from api.routers.health import router as health_router
from api.routers.assessments import router as assessments_router
from api.routers.records import router as records_router
from api.routers.chat import router as chat_router
from api.routers.users import router as users_router
from api.routers.admin import router as admin_router

__all__ = [
    "health_router",
    "assessments_router",
    "records_router",
    "chat_router",
    "users_router",
    "admin_router",
]
