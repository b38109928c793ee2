"""
Core module - Configuration, database, security, storage and utilities.
"""

from backoffice.core.config import get_settings, settings
from backoffice.core.database import Base, close_db, get_db, init_db
from backoffice.core.exceptions import NotFoundError, ServiceError
from backoffice.core.redis import close_redis, init_redis
from backoffice.core.security import (
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)
from backoffice.core.storage import FileStorage, StagedFiles, StorageError, get_storage

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Errors
    "ServiceError",
    "NotFoundError",
    # Redis
    "init_redis",
    "close_redis",
    # Security
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_token",
    # Storage
    "FileStorage",
    "StagedFiles",
    "StorageError",
    "get_storage",
]
