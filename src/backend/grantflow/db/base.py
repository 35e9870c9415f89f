"""
Declarative base shared by the profile, opportunity and match tables.
"""

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import DateTime, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Every table is keyed by a client-generated UUID."""

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


def _plain(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def model_to_dict(model: Base, exclude: set[str] | None = None) -> dict[str, Any]:
    """
    Column values of a row as JSON-friendly plain values.

    UUIDs become strings and dates become ISO strings.
    """
    skip = exclude or set()
    return {
        column.name: _plain(getattr(model, column.name))
        for column in model.__table__.columns
        if column.name not in skip
    }
