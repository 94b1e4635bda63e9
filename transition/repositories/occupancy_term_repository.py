"""
Occupancy term sources.

Each source describes one kind of record whose end date ends a resident's stay.
They share one shape: an activity flag, a parent request of a given type and an
end-date column; only the model and column names differ.
"""

from datetime import date
from typing import Any, AsyncIterator, Tuple

from sqlalchemy import Date, Select, cast, select
from sqlalchemy.ext.asyncio import AsyncSession

from transition.models.move_request import (
    MoveInRequest,
    MoveInRequestDetailsHhoCompany,
    MoveInRequestDetailsHhoOwner,
    MoveInRequestDetailsTenant,
    MoveOutRequest,
    MoveRequestStatus,
    MoveRequestType,
)
from transition.schemas.deallocation import SourceKind


class OccupancyTermSource:
    """Base class for the four term sources."""

    kind: SourceKind
    record_model: Any
    end_date_field: str

    @property
    def end_date_column(self):
        return getattr(self.record_model, self.end_date_field)

    def due_filters(self, as_of: date) -> list:
        end_date = self.end_date_column
        # Compare on the calendar date only
        return [end_date.is_not(None), cast(end_date, Date) <= as_of]

    def build_query(self, as_of: date) -> Select:
        raise NotImplementedError


class MoveInTermSource(OccupancyTermSource):
    """A move-in detail row whose parent move-in request must be active and of request_type."""

    request_type: MoveRequestType

    def build_query(self, as_of: date) -> Select:
        record = self.record_model
        return (
            select(MoveInRequest.unit_id, MoveInRequest.user_id)
            .select_from(record)
            .join(MoveInRequest, MoveInRequest.id == record.move_in_request_id)
            .where(
                record.is_active.is_(True),
                MoveInRequest.is_active.is_(True),
                MoveInRequest.request_type == self.request_type.value,
                *self.due_filters(as_of),
            )
            .order_by(MoveInRequest.unit_id, MoveInRequest.user_id, record.id)
        )


class OwnerMoveOutSource(OccupancyTermSource):
    """Approved owner move-out requests; the request is its own parent."""

    kind = SourceKind.OWNER_MOVE_OUT
    record_model = MoveOutRequest
    end_date_field = "move_out_date"

    def build_query(self, as_of: date) -> Select:
        return (
            select(MoveOutRequest.unit_id, MoveOutRequest.user_id)
            .where(
                MoveOutRequest.is_active.is_(True),
                MoveOutRequest.request_type == MoveRequestType.OWNER.value,
                MoveOutRequest.status == MoveRequestStatus.APPROVED.value,
                *self.due_filters(as_of),
            )
            .order_by(MoveOutRequest.unit_id, MoveOutRequest.user_id, MoveOutRequest.id)
        )


class TenantLeaseSource(MoveInTermSource):
    kind = SourceKind.TENANT_LEASE
    record_model = MoveInRequestDetailsTenant
    end_date_field = "tenancy_contract_end_date"
    request_type = MoveRequestType.TENANT


class CompanyLeaseSource(MoveInTermSource):
    kind = SourceKind.COMPANY_LEASE
    record_model = MoveInRequestDetailsHhoCompany
    end_date_field = "lease_end_date"
    request_type = MoveRequestType.HHO_COMPANY


class OwnerPermitSource(MoveInTermSource):
    kind = SourceKind.OWNER_PERMIT
    record_model = MoveInRequestDetailsHhoOwner
    end_date_field = "unit_permit_expiry_date"
    request_type = MoveRequestType.HHO_OWNER


DEFAULT_SOURCES: Tuple[OccupancyTermSource, ...] = (
    OwnerMoveOutSource(),
    TenantLeaseSource(),
    CompanyLeaseSource(),
    OwnerPermitSource(),
)


class OccupancyTermRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def stream_due(self, source: OccupancyTermSource, as_of: date) -> AsyncIterator[Tuple[int, int]]:
        """Yield (unit_id, user_id) rows for one source, server-side streamed."""
        result = await self.db.stream(source.build_query(as_of))
        async for row in result:
            yield row.unit_id, row.user_id
