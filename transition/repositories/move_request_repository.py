"""Repository for move-in / move-out requests and their detail rows."""

from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from transition.models.move_request import (
    MoveInRequest,
    MoveInRequestDetailsHhoCompany,
    MoveInRequestDetailsHhoOwner,
    MoveInRequestDetailsTenant,
    MoveOutRequest,
    MoveRequestStatus,
    MoveRequestType,
)

# Which detail table backs each move-in request type (owners carry no end date)
DETAIL_MODELS = {
    MoveRequestType.TENANT.value: MoveInRequestDetailsTenant,
    MoveRequestType.HHO_COMPANY.value: MoveInRequestDetailsHhoCompany,
    MoveRequestType.HHO_OWNER.value: MoveInRequestDetailsHhoOwner,
}


class MoveRequestRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_request_numbers(self, number_column: InstrumentedAttribute, unit_id: int, prefix: str) -> List[str]:
        model = number_column.class_
        result = await self.db.execute(
            select(number_column).where(
                model.unit_id == unit_id,
                number_column.startswith(prefix, autoescape=True),
            )
        )
        return [value for value in result.scalars().all() if value]

    async def create_move_in_request(
        self,
        *,
        request_no: str,
        request_type: str,
        unit_id: int,
        user_id: int,
        created_by: int,
        move_in_date: Optional[date] = None,
        comments: Optional[str] = None,
    ) -> MoveInRequest:
        request = MoveInRequest(
            move_in_request_no=request_no,
            request_type=request_type,
            unit_id=unit_id,
            user_id=user_id,
            status=MoveRequestStatus.OPEN.value,
            move_in_date=move_in_date,
            comments=comments,
            created_by=created_by,
            updated_by=created_by,
            is_active=True,
        )
        self.db.add(request)
        await self.db.flush()
        return request

    async def create_move_in_details(self, request: MoveInRequest, created_by: int, **fields):
        detail_model = DETAIL_MODELS.get(request.request_type)
        if detail_model is None:
            return None
        detail = detail_model(
            move_in_request_id=request.id,
            created_by=created_by,
            updated_by=created_by,
            is_active=True,
            **fields,
        )
        self.db.add(detail)
        await self.db.flush()
        return detail

    async def create_move_out_request(
        self,
        *,
        request_no: str,
        request_type: str,
        unit_id: int,
        user_id: int,
        created_by: int,
        move_out_date: Optional[date] = None,
        comments: Optional[str] = None,
    ) -> MoveOutRequest:
        request = MoveOutRequest(
            move_out_request_no=request_no,
            request_type=request_type,
            unit_id=unit_id,
            user_id=user_id,
            status=MoveRequestStatus.OPEN.value,
            move_out_date=move_out_date,
            comments=comments,
            created_by=created_by,
            updated_by=created_by,
            is_active=True,
        )
        self.db.add(request)
        await self.db.flush()
        return request
