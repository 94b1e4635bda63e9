"""Repository for users, their pending update requests and sales bookings."""

from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from transition.models.booking import UnitBooking
from transition.models.integration import Integration
from transition.models.user import PENDING_UPDATE_STATUSES, User, UserUpdateRequest


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_email(self, user_id: int) -> Optional[str]:
        result = await self.db.execute(select(User.email).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def has_booking_elsewhere(self, email: str, exclude_unit_id: int) -> bool:
        result = await self.db.execute(
            select(UnitBooking.id)
            .where(
                and_(
                    UnitBooking.customer_email == email,
                    UnitBooking.unit_id != exclude_unit_id,
                    UnitBooking.is_active.is_(True),
                )
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def list_pending_update_requests(self, user_id: int) -> List[UserUpdateRequest]:
        result = await self.db.execute(
            select(UserUpdateRequest)
            .where(
                and_(
                    UserUpdateRequest.user_id == user_id,
                    UserUpdateRequest.status.in_(PENDING_UPDATE_STATUSES),
                )
            )
            .order_by(UserUpdateRequest.id)
        )
        return list(result.scalars().all())

    async def get_integration(self, name: str) -> Optional[Integration]:
        result = await self.db.execute(
            select(Integration).where(and_(Integration.name == name, Integration.is_active.is_(True)))
        )
        return result.scalar_one_or_none()
