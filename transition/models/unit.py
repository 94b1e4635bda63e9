"""
Unit model.

A residential unit and its current occupancy status.
"""

import enum
from typing import Optional

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from transition.models.base_model import AuditedModel


class OccupancyStatus(str, enum.Enum):
    VACANT = "vacant"
    OWNER = "owner"
    TENANT = "tenant"
    HHO_UNIT = "hho-unit"
    HHO_COMPANY = "hho-company"


class Unit(AuditedModel):
    """Units table. Only the de-allocation pipeline moves a unit to vacant automatically."""

    __tablename__ = "units"

    unit_number: Mapped[str] = mapped_column(String(50), nullable=False)
    unit_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    occupancy_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OccupancyStatus.VACANT.value,
        server_default=OccupancyStatus.VACANT.value,
    )

    # Request numbers are prefixed with the unit number and unique across all units
    __table_args__ = (
        Index("uq_units_unit_number", "unit_number", unique=True),
    )
