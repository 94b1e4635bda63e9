"""
Integration model.

Named integration identities. Automated runs act as the user bound to their
integration row, so audit columns point at a real system account.
"""

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from transition.models.base_model import AuditedModel


class Integration(AuditedModel):
    __tablename__ = "integrations"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    header: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
