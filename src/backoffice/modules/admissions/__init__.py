"""
Admissions module - public application intake and staff review.
"""

from backoffice.modules.admissions.admin_router import router as admin_router
from backoffice.modules.admissions.router import router

__all__ = ["router", "admin_router"]
