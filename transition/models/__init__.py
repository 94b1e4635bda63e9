"""
Models package.

Import all models here so they are registered with SQLAlchemy.
"""

from transition.models.unit import Unit, OccupancyStatus
from transition.models.user import User, UserUpdateRequest
from transition.models.role import Role, UserRole, RoleToFamilyMemberMapping, FamilyMemberServiceMapping
from transition.models.move_request import (
    MoveInRequest,
    MoveInRequestDetailsTenant,
    MoveInRequestDetailsHhoCompany,
    MoveInRequestDetailsHhoOwner,
    MoveOutRequest,
)
from transition.models.delegated_access import (
    AccessCardRequest,
    PowerOfAttorneyRequest,
    PowerOfAttorney,
    VisitorRequest,
    AmenityBooking,
)
from transition.models.booking import UnitBooking
from transition.models.integration import Integration
from transition.models.job_run_lease import JobRunLease

__all__ = [
    "Unit",
    "OccupancyStatus",
    "User",
    "UserUpdateRequest",
    "Role",
    "UserRole",
    "RoleToFamilyMemberMapping",
    "FamilyMemberServiceMapping",
    "MoveInRequest",
    "MoveInRequestDetailsTenant",
    "MoveInRequestDetailsHhoCompany",
    "MoveInRequestDetailsHhoOwner",
    "MoveOutRequest",
    "AccessCardRequest",
    "PowerOfAttorneyRequest",
    "PowerOfAttorney",
    "VisitorRequest",
    "AmenityBooking",
    "UnitBooking",
    "Integration",
    "JobRunLease",
]
