"""
Users module - Staff accounts for the back office.
"""

from backoffice.modules.users.models import StaffRole, StaffUserAccount
from backoffice.modules.users.repository import UserRepository

__all__ = ["StaffRole", "StaffUserAccount", "UserRepository"]
