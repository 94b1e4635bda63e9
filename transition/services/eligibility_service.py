"""Eligibility resolver: which (unit, user) pairs reached the end of their term."""

import logging
from datetime import date
from typing import AsyncIterator, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from transition.repositories.occupancy_term_repository import (
    DEFAULT_SOURCES,
    OccupancyTermRepository,
    OccupancyTermSource,
)
from transition.schemas.deallocation import DueUnitUserPair

logger = logging.getLogger(__name__)


class EligibilityService:
    def __init__(self, db: AsyncSession, sources: Optional[Iterable[OccupancyTermSource]] = None):
        self.db = db
        self.repo = OccupancyTermRepository(db)
        self.sources = tuple(sources) if sources is not None else DEFAULT_SOURCES

    async def find_due_pairs(self, as_of: date) -> AsyncIterator[DueUnitUserPair]:
        """
        Yield every pair whose term ended on or before as_of, source by source.

        A pair can appear once per source that names it; callers must tolerate
        repeats. Query errors propagate.
        """
        for source in self.sources:
            count = 0
            async for unit_id, user_id in self.repo.stream_due(source, as_of):
                count += 1
                yield DueUnitUserPair(unit_id=unit_id, user_id=user_id, source_kind=source.kind)
            logger.debug("Eligibility source %s yielded %d pair(s) as of %s", source.kind.value, count, as_of)
