"""Creation of move-in / move-out requests with unit-scoped request numbers."""

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from transition.models.move_request import MoveInRequest, MoveOutRequest
from transition.repositories.move_request_repository import MoveRequestRepository
from transition.services.request_number_service import RequestNumberService

logger = logging.getLogger(__name__)

MOVE_IN_PREFIX = "MIN-{unit_number}-"
MOVE_OUT_PREFIX = "MOR-{unit_number}-"


class MoveRequestService:
    """
    Persists new requests. Never commits: the caller owns the transaction, and
    the unit lock taken for numbering is held until it ends.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = MoveRequestRepository(db)
        self.numbers = RequestNumberService(db)

    async def create_move_in_request(
        self,
        unit_id: int,
        user_id: int,
        request_type: str,
        created_by: int,
        move_in_date: Optional[date] = None,
        comments: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> MoveInRequest:
        request_no = await self.numbers.next_request_number(
            unit_id, MOVE_IN_PREFIX, MoveInRequest.move_in_request_no
        )
        request = await self.repo.create_move_in_request(
            request_no=request_no,
            request_type=request_type,
            unit_id=unit_id,
            user_id=user_id,
            created_by=created_by,
            move_in_date=move_in_date,
            comments=comments,
        )
        if details:
            await self.repo.create_move_in_details(request, created_by, **details)

        logger.info("MOVE-IN CREATED: %s for unit %s by user %s", request_no, unit_id, created_by)
        return request

    async def create_move_out_request(
        self,
        unit_id: int,
        user_id: int,
        request_type: str,
        created_by: int,
        move_out_date: Optional[date] = None,
        comments: Optional[str] = None,
    ) -> MoveOutRequest:
        request_no = await self.numbers.next_request_number(
            unit_id, MOVE_OUT_PREFIX, MoveOutRequest.move_out_request_no
        )
        request = await self.repo.create_move_out_request(
            request_no=request_no,
            request_type=request_type,
            unit_id=unit_id,
            user_id=user_id,
            created_by=created_by,
            move_out_date=move_out_date,
            comments=comments,
        )
        logger.info("MOVE-OUT CREATED: %s for unit %s by user %s", request_no, unit_id, created_by)
        return request
