"""
Unit-scoped request numbers.

Numbers look like MIN-A101-7: a per-unit prefix followed by a counter. The
counter is derived from the numbers already stored for the unit while the unit
row is locked, so concurrent writers for one unit queue up behind each other
and writers for other units are unaffected.
"""

from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from transition.errors import UnitNotFoundError
from transition.models.move_request import MoveInRequest
from transition.repositories.move_request_repository import MoveRequestRepository
from transition.repositories.unit_repository import UnitRepository


def next_in_sequence(prefix: str, existing_numbers: Iterable[str]) -> str:
    """Return prefix + (highest numeric suffix + 1); non-numeric suffixes are ignored."""
    highest = 0
    for number in existing_numbers:
        if not number or not number.startswith(prefix):
            continue
        suffix = number[len(prefix):]
        if suffix.isascii() and suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1}"


class RequestNumberService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.units = UnitRepository(db)
        self.requests = MoveRequestRepository(db)

    async def next_request_number(
        self,
        unit_id: int,
        prefix_template: str,
        number_column: InstrumentedAttribute = MoveInRequest.move_in_request_no,
    ) -> str:
        """
        Compute the next number for unit_id inside the caller's transaction.

        The unit row stays locked until that transaction ends, so the caller
        must persist the returned number before committing.

        Raises:
            UnitNotFoundError: the unit row does not exist.
        """
        unit = await self.units.lock_for_update(unit_id)
        if unit is None:
            raise UnitNotFoundError(unit_id)

        prefix = prefix_template.format(unit_number=unit.unit_number, unit_id=unit.id)
        existing = await self.requests.list_request_numbers(number_column, unit_id, prefix)
        return next_in_sequence(prefix, existing)
