"""
Admin module - staff dashboard and own-profile management.
"""

from backoffice.modules.admin.router import router

__all__ = ["router"]
