"""
Move-in / move-out request models.

Move-in requests carry one detail row per request type; the detail rows hold
the end date that ends the occupancy term (tenancy contract, company lease,
holiday-home unit permit). Owner move-outs carry their own move-out date.
"""

import enum
from datetime import date
from typing import Optional

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transition.models.base_model import AuditedModel


class MoveRequestType(str, enum.Enum):
    OWNER = "owner"
    TENANT = "tenant"
    HHO_OWNER = "hho-owner"
    HHO_COMPANY = "hho-company"


class MoveRequestStatus(str, enum.Enum):
    OPEN = "open"
    RFI_PENDING = "rfi-pending"
    RFI_SUBMITTED = "rfi-submitted"
    APPROVED = "approved"
    CLOSED = "closed"
    CANCELLED = "cancelled"
    USER_CANCELLED = "user-cancelled"


class MoveInRequest(AuditedModel):
    __tablename__ = "move_in_requests"

    move_in_request_no: Mapped[str] = mapped_column(String(100), nullable=False)
    request_type: Mapped[str] = mapped_column(String(20), nullable=False)
    unit_id: Mapped[int] = mapped_column(Integer, ForeignKey("units.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=MoveRequestStatus.OPEN.value)
    move_in_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("uq_move_in_request_no", "move_in_request_no", unique=True),
        Index("ix_move_in_requests_unit_user", "unit_id", "user_id"),
    )


class MoveInRequestDetailsTenant(AuditedModel):
    __tablename__ = "move_in_request_details_tenant"

    move_in_request_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("move_in_requests.id"), nullable=False, index=True
    )
    tenancy_contract_start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    tenancy_contract_end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    move_in_request: Mapped["MoveInRequest"] = relationship("MoveInRequest")


class MoveInRequestDetailsHhoCompany(AuditedModel):
    __tablename__ = "move_in_request_details_hho_company"

    move_in_request_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("move_in_requests.id"), nullable=False, index=True
    )
    company_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    trade_license_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    lease_start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    lease_end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    move_in_request: Mapped["MoveInRequest"] = relationship("MoveInRequest")


class MoveInRequestDetailsHhoOwner(AuditedModel):
    __tablename__ = "move_in_request_details_hho_owner"

    move_in_request_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("move_in_requests.id"), nullable=False, index=True
    )
    unit_permit_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    unit_permit_start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    unit_permit_expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    move_in_request: Mapped["MoveInRequest"] = relationship("MoveInRequest")


class MoveOutRequest(AuditedModel):
    __tablename__ = "move_out_requests"

    move_out_request_no: Mapped[str] = mapped_column(String(100), nullable=False)
    request_type: Mapped[str] = mapped_column(String(20), nullable=False)
    unit_id: Mapped[int] = mapped_column(Integer, ForeignKey("units.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=MoveRequestStatus.OPEN.value)
    move_out_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("uq_move_out_request_no", "move_out_request_no", unique=True),
        Index("ix_move_out_requests_unit_user", "unit_id", "user_id"),
    )
