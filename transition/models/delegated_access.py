"""
Delegated access models: access cards, power of attorney, visitors, amenity bookings.

Revocation never deletes these rows; it deactivates them and, where a status
exists, moves it to the cancelled terminal value.
"""

import enum
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from transition.models.base_model import AuditedModel


class AccessCardType(str, enum.Enum):
    PARKING = "parking"
    COMMUNITY = "community"


class AccessCardRequestStatus(str, enum.Enum):
    NEW = "new"
    IN_PROGRESS = "in-progress"
    APPROVED = "approved"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class AccessCardRequestAction(str, enum.Enum):
    NEW = "new"
    CANCEL = "cancel"


class POAStatus(str, enum.Enum):
    NEW = "new"
    RFI_NEEDED = "rfi-needed"
    RFI_SUBMITTED = "rfi-submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# POA requests that can still be cancelled
CANCELLABLE_POA_STATUSES = (
    POAStatus.NEW.value,
    POAStatus.RFI_NEEDED.value,
    POAStatus.RFI_SUBMITTED.value,
    POAStatus.APPROVED.value,
)


class AmenityBookingStatus(str, enum.Enum):
    BOOKED = "booked"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class AccessCardRequest(AuditedModel):
    __tablename__ = "access_card_requests"

    unit_id: Mapped[int] = mapped_column(Integer, ForeignKey("units.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    card_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=AccessCardRequestStatus.NEW.value)
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_access_card_requests_unit_user", "unit_id", "user_id"),
    )


class PowerOfAttorneyRequest(AuditedModel):
    __tablename__ = "power_of_attorney_requests"

    unit_id: Mapped[int] = mapped_column(Integer, ForeignKey("units.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    poa_status: Mapped[str] = mapped_column(String(20), nullable=False, default=POAStatus.NEW.value)

    __table_args__ = (
        Index("ix_poa_requests_unit_user", "unit_id", "user_id"),
    )


class PowerOfAttorney(AuditedModel):
    """An approved POA grant held for the unit."""

    __tablename__ = "power_of_attorney"

    unit_id: Mapped[int] = mapped_column(Integer, ForeignKey("units.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    attorney_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    valid_until: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    __table_args__ = (
        Index("ix_poa_unit_user", "unit_id", "user_id"),
    )


class VisitorRequest(AuditedModel):
    __tablename__ = "visitor_requests"

    unit_id: Mapped[int] = mapped_column(Integer, ForeignKey("units.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    visitor_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    visit_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    __table_args__ = (
        Index("ix_visitor_requests_unit_user", "unit_id", "user_id"),
    )


class AmenityBooking(AuditedModel):
    __tablename__ = "amenity_bookings"

    unit_id: Mapped[int] = mapped_column(Integer, ForeignKey("units.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    amenity_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=AmenityBookingStatus.BOOKED.value)
    is_cancelled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    cancel_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancel_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("ix_amenity_bookings_unit_user", "unit_id", "user_id"),
    )
