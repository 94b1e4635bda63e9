"""
Role and role-mapping models.

A UserRole binds a user to a unit in a given role (owner, tenant, ...).
Business rule: at most one active mapping per (unit, user); not enforced by a constraint.
"""

import enum
from datetime import date
from typing import Optional

from sqlalchemy import Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transition.models.base_model import AuditedModel


class RoleSlug(str, enum.Enum):
    OWNER = "owner"
    TENANT = "tenant"
    HHO_OWNER = "hho-owner"
    HHO_COMPANY = "hho-company"


class Role(AuditedModel):
    __tablename__ = "roles"

    slug: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    role_name: Mapped[str] = mapped_column(String(100), nullable=False)


class UserRole(AuditedModel):
    __tablename__ = "user_roles"

    unit_id: Mapped[int] = mapped_column(Integer, ForeignKey("units.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    role_id: Mapped[int] = mapped_column(Integer, ForeignKey("roles.id"), nullable=False)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    role: Mapped["Role"] = relationship("Role", lazy="joined")

    __table_args__ = (
        Index("ix_user_roles_unit_user_active", "unit_id", "user_id", "is_active"),
        Index("ix_user_roles_user_role_active", "user_id", "role_id", "is_active"),
    )


class RoleToFamilyMemberMapping(AuditedModel):
    """Family member access granted through the granting resident's role mapping."""

    __tablename__ = "role_to_family_member_mappings"

    unit_id: Mapped[int] = mapped_column(Integer, ForeignKey("units.id"), nullable=False)
    user_role_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_roles.id"), nullable=False, index=True)
    family_member_user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)


class FamilyMemberServiceMapping(AuditedModel):
    """Premium services the resident extended to a family member for the unit."""

    __tablename__ = "family_member_service_mappings"

    unit_id: Mapped[int] = mapped_column(Integer, ForeignKey("units.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    family_member_user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    service_key: Mapped[str] = mapped_column(String(50), nullable=False)

    __table_args__ = (
        Index("ix_family_member_service_unit_user", "unit_id", "user_id"),
    )
