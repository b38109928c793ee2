from fastapi import APIRouter

from backoffice.modules.admin import router as admin_router
from backoffice.modules.admissions import admin_router as admin_applications_router
from backoffice.modules.admissions import router as applications_router
from backoffice.modules.auth import router as auth_router
from backoffice.modules.messages import admin_router as admin_messages_router
from backoffice.modules.messages import router as messages_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(applications_router, prefix="/applications", tags=["Applications"])

api_router.include_router(messages_router, prefix="/messages", tags=["Messages"])

api_router.include_router(
    admin_applications_router,
    prefix="/admin/applications",
    tags=["Admin - Applications"],
)

api_router.include_router(
    admin_messages_router,
    prefix="/admin/messages",
    tags=["Admin - Messages"],
)

api_router.include_router(admin_router, prefix="/admin", tags=["Admin - Dashboard & Profile"])
