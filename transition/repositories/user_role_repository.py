"""Repository for role mappings and the delegation mappings hanging off them."""

from datetime import date
from typing import Optional

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from transition.models.role import FamilyMemberServiceMapping, Role, RoleToFamilyMemberMapping, UserRole


class UserRoleRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_active_for_unit(self, unit_id: int, user_id: int) -> Optional[UserRole]:
        # Only one mapping should be active per (unit, user); take the newest if data says otherwise
        result = await self.db.execute(
            select(UserRole)
            .where(
                and_(
                    UserRole.unit_id == unit_id,
                    UserRole.user_id == user_id,
                    UserRole.is_active.is_(True),
                )
            )
            .order_by(UserRole.id.desc())
            .limit(1)
        )
        return result.unique().scalar_one_or_none()

    async def deactivate_for_unit(self, unit_id: int, user_id: int, updated_by: int, end_date: date) -> int:
        stmt = (
            update(UserRole)
            .where(
                and_(
                    UserRole.unit_id == unit_id,
                    UserRole.user_id == user_id,
                    UserRole.is_active.is_(True),
                )
            )
            .values(is_active=False, end_date=end_date, updated_by=updated_by)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return int(result.rowcount or 0)

    async def deactivate_family_service_mappings(self, unit_id: int, user_id: int, updated_by: int) -> int:
        stmt = (
            update(FamilyMemberServiceMapping)
            .where(
                and_(
                    FamilyMemberServiceMapping.unit_id == unit_id,
                    FamilyMemberServiceMapping.user_id == user_id,
                    FamilyMemberServiceMapping.is_active.is_(True),
                )
            )
            .values(is_active=False, updated_by=updated_by)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return int(result.rowcount or 0)

    async def deactivate_family_member_access(self, unit_id: int, user_role_id: int, updated_by: int) -> int:
        stmt = (
            update(RoleToFamilyMemberMapping)
            .where(
                and_(
                    RoleToFamilyMemberMapping.unit_id == unit_id,
                    RoleToFamilyMemberMapping.user_role_id == user_role_id,
                    RoleToFamilyMemberMapping.is_active.is_(True),
                )
            )
            .values(is_active=False, updated_by=updated_by)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return int(result.rowcount or 0)

    async def has_active_role_elsewhere(self, user_id: int, exclude_unit_id: int, role_slug: str) -> bool:
        result = await self.db.execute(
            select(UserRole.id)
            .join(Role, Role.id == UserRole.role_id)
            .where(
                and_(
                    UserRole.user_id == user_id,
                    UserRole.unit_id != exclude_unit_id,
                    UserRole.is_active.is_(True),
                    Role.slug == role_slug,
                )
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None
