"""
Base model with common fields.

All audited tables inherit from this to get:
- id (integer primary key)
- is_active (soft-delete / activity flag)
- created_by / updated_by (acting user ids)
- created_at / updated_at (timestamps)
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, func
from sqlalchemy.orm import Mapped, mapped_column

from transition.db.base import Base


class AuditedModel(Base):
    """
    Abstract base class for audited models.

    This is not a real table - it's a template that other models inherit from.
    """

    __abstract__ = True

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Every lifecycle record is deactivated rather than deleted
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    updated_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
