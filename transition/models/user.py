"""
User and pending profile-update models.
"""

import enum
from datetime import date
from typing import Optional

from sqlalchemy import Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from transition.models.base_model import AuditedModel


class UserUpdateRequestStatus(str, enum.Enum):
    NEW = "new"
    RFI_PENDING = "rfi-pending"
    RFI_SUBMITTED = "rfi-submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


# Requests still waiting on an admin decision
PENDING_UPDATE_STATUSES = (
    UserUpdateRequestStatus.NEW.value,
    UserUpdateRequestStatus.RFI_PENDING.value,
    UserUpdateRequestStatus.RFI_SUBMITTED.value,
)


class User(AuditedModel):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        Index("ix_users_email", "email"),
    )


class UserUpdateRequest(AuditedModel):
    """
    A resident's requested change to their profile or communication details.

    Profile fields and communication fields share one row; which downstream
    endpoint applies it depends on which fields are populated.
    """

    __tablename__ = "user_update_requests"

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=UserUpdateRequestStatus.NEW.value)

    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    middle_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    dob: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    honorific: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    profession: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    nationality: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    residency_status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    alternative_mobile: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    alternative_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    passport_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    passport_expiry: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    eid_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    eid_expiry: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Communication details
    dial_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    mobile: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
