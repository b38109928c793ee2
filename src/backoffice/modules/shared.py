"""
Shared model bases

- ``BaseModel``: abstract ORM base giving every table a UUID primary key and
  created/updated audit timestamps.
- ``CamelModel``: Pydantic base for the JSON API. Fields are snake_case in
  Python and camelCase on the wire, and either spelling is accepted on input.
- ``Pagination``: page metadata shared by the staff list endpoints.
- ``contains_pattern``: escaped substring pattern for staff search.
"""

import math
import uuid
from datetime import datetime

from pydantic import BaseModel as PydanticBaseModel
from pydantic import ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import DateTime, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.core.database import Base


class BaseModel(Base):
    """Abstract base with ``id``, ``created_at`` and ``updated_at``."""

    __abstract__ = True
    # Load server-generated timestamps in the INSERT/UPDATE itself (RETURNING)
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class CamelModel(PydanticBaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


class Pagination(CamelModel):
    """Page metadata for list responses."""

    current_page: int
    total_pages: int
    total: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if total else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total=total,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


LIKE_ESCAPE = "\\"


def contains_pattern(text: str) -> str:
    """``%text%`` for ILIKE, with the text's own wildcards matched literally."""
    escaped = (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"
