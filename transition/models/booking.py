"""
UnitBooking model.

Sales bookings keyed by customer email; a booking on another unit means the
customer is still an owner-to-be even without an active role mapping.
"""

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from transition.models.base_model import AuditedModel


class UnitBooking(AuditedModel):
    __tablename__ = "unit_bookings"

    unit_id: Mapped[int] = mapped_column(Integer, ForeignKey("units.id"), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        Index("ix_unit_bookings_customer_email", "customer_email"),
    )
