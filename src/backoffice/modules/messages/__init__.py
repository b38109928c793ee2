"""
Messages module - public contact form and staff triage.
"""

from backoffice.modules.messages.admin_router import router as admin_router
from backoffice.modules.messages.router import router

__all__ = ["router", "admin_router"]
