"""
Shared column helpers for the upgrade API's tables.

Provides:
- generate_uuid: string primary keys, matching the ids the app server issues
- TimestampMixin: created_at / updated_at maintained by the database
"""

import uuid

from sqlalchemy import Column, DateTime, func

from vangarments.db_base import Base  # noqa: F401


def generate_uuid() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    # Subscription ordering ("newest active wins") relies on created_at.
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
