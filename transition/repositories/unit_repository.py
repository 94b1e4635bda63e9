"""Repository for unit rows."""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from transition.models.unit import Unit


class UnitRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def lock_for_update(self, unit_id: int) -> Optional[Unit]:
        """
        SELECT ... FOR UPDATE on the unit row.

        The lock lives until the surrounding transaction commits or rolls back.
        """
        result = await self.db.execute(
            select(Unit).where(Unit.id == unit_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def set_occupancy_status(self, unit_id: int, status: str, updated_by: int) -> int:
        stmt = (
            update(Unit)
            .where(Unit.id == unit_id)
            .values(occupancy_status=status, updated_by=updated_by)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return int(result.rowcount or 0)
