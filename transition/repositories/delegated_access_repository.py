"""Repository for delegated access records tied to a (unit, user) pair."""

from datetime import datetime

from sqlalchemy import and_, update
from sqlalchemy.ext.asyncio import AsyncSession

from transition.models.delegated_access import (
    CANCELLABLE_POA_STATUSES,
    AccessCardRequest,
    AccessCardRequestStatus,
    AmenityBooking,
    AmenityBookingStatus,
    POAStatus,
    PowerOfAttorney,
    PowerOfAttorneyRequest,
    VisitorRequest,
)

# Access-card requests in these states are finished locally and can only be undone downstream
TERMINAL_ACCESS_CARD_STATUSES = (
    AccessCardRequestStatus.CLOSED.value,
    AccessCardRequestStatus.CANCELLED.value,
)


class DelegatedAccessRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def cancel_open_access_card_requests(
        self, unit_id: int, user_id: int, updated_by: int, comments: str
    ) -> int:
        stmt = (
            update(AccessCardRequest)
            .where(
                and_(
                    AccessCardRequest.unit_id == unit_id,
                    AccessCardRequest.user_id == user_id,
                    AccessCardRequest.is_active.is_(True),
                    AccessCardRequest.status.not_in(TERMINAL_ACCESS_CARD_STATUSES),
                )
            )
            .values(
                is_active=False,
                status=AccessCardRequestStatus.CANCELLED.value,
                comments=comments,
                updated_by=updated_by,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return int(result.rowcount or 0)

    async def cancel_poa_requests(self, unit_id: int, user_id: int, updated_by: int) -> int:
        stmt = (
            update(PowerOfAttorneyRequest)
            .where(
                and_(
                    PowerOfAttorneyRequest.unit_id == unit_id,
                    PowerOfAttorneyRequest.user_id == user_id,
                    PowerOfAttorneyRequest.is_active.is_(True),
                    PowerOfAttorneyRequest.poa_status.in_(CANCELLABLE_POA_STATUSES),
                )
            )
            .values(poa_status=POAStatus.CANCELLED.value, is_active=False, updated_by=updated_by)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return int(result.rowcount or 0)

    async def deactivate_poa_grants(self, unit_id: int, user_id: int, updated_by: int) -> int:
        stmt = (
            update(PowerOfAttorney)
            .where(
                and_(
                    PowerOfAttorney.unit_id == unit_id,
                    PowerOfAttorney.user_id == user_id,
                    PowerOfAttorney.is_active.is_(True),
                )
            )
            .values(is_active=False, updated_by=updated_by)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return int(result.rowcount or 0)

    async def deactivate_visitor_requests(self, unit_id: int, user_id: int, updated_by: int) -> int:
        stmt = (
            update(VisitorRequest)
            .where(
                and_(
                    VisitorRequest.unit_id == unit_id,
                    VisitorRequest.user_id == user_id,
                    VisitorRequest.is_active.is_(True),
                )
            )
            .values(is_active=False, updated_by=updated_by)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return int(result.rowcount or 0)

    async def cancel_amenity_bookings(
        self, unit_id: int, user_id: int, updated_by: int, reason: str, cancelled_at: datetime
    ) -> int:
        stmt = (
            update(AmenityBooking)
            .where(
                and_(
                    AmenityBooking.unit_id == unit_id,
                    AmenityBooking.user_id == user_id,
                    AmenityBooking.is_cancelled.is_(False),
                )
            )
            .values(
                status=AmenityBookingStatus.CANCELLED.value,
                is_cancelled=True,
                cancel_date=cancelled_at,
                cancel_reason=reason,
                updated_by=updated_by,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return int(result.rowcount or 0)
