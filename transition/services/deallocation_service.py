"""
De-allocation of a resident from a unit.

Steps run in a fixed order and commit one at a time. Delegated-access steps are
best effort: a failure is logged, recorded in the report and the next step
still runs. Removing the role mapping is the one step that gates the rest: the
unit is only marked vacant once nobody holds an active role on it.
"""

import logging
from datetime import date
from typing import Any, Awaitable, Callable, Iterable, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from transition.clients.community_client import CommunityServiceClient
from transition.clients.user_service_client import UserServiceClient
from transition.errors import DownstreamServiceError, UnitNotFoundError
from transition.models.delegated_access import AccessCardRequestAction, AccessCardRequestStatus, AccessCardType
from transition.models.role import RoleSlug
from transition.models.unit import OccupancyStatus
from transition.models.user import UserUpdateRequest
from transition.repositories.delegated_access_repository import DelegatedAccessRepository
from transition.repositories.unit_repository import UnitRepository
from transition.repositories.user_repository import UserRepository
from transition.repositories.user_role_repository import UserRoleRepository
from transition.schemas.deallocation import RevocationReport, SourceKind, StepResult, StepStatus
from transition.utils.time import today, utc_now

logger = logging.getLogger(__name__)

STEP_GUARD = "guard_check"
STEP_ACCESS_CARDS_LOCAL = "cancel_access_cards_local"
STEP_ACCESS_CARDS_DOWNSTREAM = "cancel_access_cards_downstream"
STEP_POWER_OF_ATTORNEY = "cancel_power_of_attorney"
STEP_VISITOR_REQUESTS = "cancel_visitor_requests"
STEP_AMENITY_BOOKINGS = "cancel_amenity_bookings"
STEP_SERVICE_REQUESTS = "cancel_service_requests"
STEP_PROFILE_UPDATES = "approve_profile_updates"
STEP_ROLE_MAPPING = "remove_role_mapping"
STEP_VACATE_UNIT = "vacate_unit"

ACCESS_CARD_CANCEL_COMMENT = "Cancelled against Unit Resale"
AMENITY_CANCEL_REASON = "Unit Auto De-Allocation"

PROFILE_ENDPOINT = "profile"
COMMUNICATION_ENDPOINT = "communication"


class ServiceRequestCanceller(Protocol):
    """Hook for subsystems whose service requests must be cancelled on de-allocation."""

    name: str

    async def cancel(self, db: AsyncSession, unit_id: int, user_id: int, acting_user_id: int) -> int:
        ...


def group_cancellation_actions(closed_actions: Iterable[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    """
    Turn closed card actions into cancel actions, split by card kind.

    Vehicle actions go to parking, slot-bound actions to community; anything
    else has no downstream counterpart and is dropped.
    """
    groups: dict[str, list[dict[str, Any]]] = {
        AccessCardType.PARKING.value: [],
        AccessCardType.COMMUNITY.value: [],
    }
    for action in closed_actions:
        if not isinstance(action, dict):
            continue
        cancel_action = {**action, "accessRequestType": AccessCardRequestAction.CANCEL.value}
        if action.get("vehicleActionJson"):
            groups[AccessCardType.PARKING.value].append(cancel_action)
        elif action.get("accessCardSlotId"):
            groups[AccessCardType.COMMUNITY.value].append(cancel_action)
    return groups


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def build_profile_update_call(request: UserUpdateRequest) -> tuple[str, dict[str, Any]]:
    """Pick the identity-service endpoint for a pending update and build its payload."""
    if request.email or (request.mobile and request.dial_code):
        return COMMUNICATION_ENDPOINT, {
            "email": request.email,
            "mobile": request.mobile,
            "dialCode": request.dial_code,
        }

    payload: dict[str, Any] = {
        "firstName": request.first_name,
        "middleName": request.middle_name,
        "lastName": request.last_name,
        "dob": _iso(request.dob),
        "gender": request.gender,
        "honorific": request.honorific,
        "profession": request.profession,
        "residencyStatus": request.residency_status,
        "alternativeMobile": request.alternative_mobile,
        "alternativeEmail": request.alternative_email,
        "passportNumber": request.passport_number,
        "passportExpiry": _iso(request.passport_expiry),
        "eidNumber": request.eid_number,
        "eidExpiry": _iso(request.eid_expiry),
    }
    if request.nationality is not None:
        payload["nationality"] = str(request.nationality)
    return PROFILE_ENDPOINT, payload


class DeallocationService:
    """Revoke one resident's access to one unit."""

    def __init__(
        self,
        db: AsyncSession,
        community_client: Optional[CommunityServiceClient] = None,
        user_service_client: Optional[UserServiceClient] = None,
        service_request_cancellers: Optional[Iterable[ServiceRequestCanceller]] = None,
        today_fn: Callable[[], date] = today,
    ):
        self.db = db
        self.units = UnitRepository(db)
        self.roles = UserRoleRepository(db)
        self.access = DelegatedAccessRepository(db)
        self.users = UserRepository(db)
        self.community = community_client or CommunityServiceClient()
        self.user_service = user_service_client or UserServiceClient()
        self.service_request_cancellers = list(service_request_cancellers or [])
        self._today = today_fn

    async def revoke(
        self,
        unit_id: int,
        user_id: int,
        acting_user_id: int,
        integration_token: Optional[str],
        source_kind: Optional[SourceKind] = None,
    ) -> RevocationReport:
        report = RevocationReport(unit_id=unit_id, user_id=user_id, source_kind=source_kind)

        user_role = await self.roles.get_active_for_unit(unit_id, user_id)
        if user_role is None:
            logger.info("No active role for unit %s user %s; already de-allocated", unit_id, user_id)
            report.already_revoked = True
            report.record(StepResult.skipped(STEP_GUARD, "no active role mapping"))
            return report
        user_role_id = user_role.id
        report.record(StepResult.succeeded(STEP_GUARD, user_role_id=user_role_id))

        logger.info("De-allocating unit %s from user %s (user_role %s)", unit_id, user_id, user_role_id)

        report.record(
            await self._run_local_step(
                STEP_ACCESS_CARDS_LOCAL,
                unit_id,
                user_id,
                lambda: self._cancel_local_access_cards(unit_id, user_id, acting_user_id),
            )
        )
        report.record(await self._cancel_downstream_access_cards(unit_id, user_id, integration_token))
        report.record(
            await self._run_local_step(
                STEP_POWER_OF_ATTORNEY,
                unit_id,
                user_id,
                lambda: self._cancel_power_of_attorney(unit_id, user_id, acting_user_id),
            )
        )
        report.record(
            await self._run_local_step(
                STEP_VISITOR_REQUESTS,
                unit_id,
                user_id,
                lambda: self._cancel_visitor_requests(unit_id, user_id, acting_user_id),
            )
        )
        report.record(
            await self._run_local_step(
                STEP_AMENITY_BOOKINGS,
                unit_id,
                user_id,
                lambda: self._cancel_amenity_bookings(unit_id, user_id, acting_user_id),
            )
        )
        report.record(await self._cancel_service_requests(unit_id, user_id, acting_user_id))

        if source_kind is SourceKind.OWNER_MOVE_OUT:
            report.record(await self._approve_profile_updates_if_exited(unit_id, user_id, integration_token))

        role_result = report.record(await self._remove_role_mapping(unit_id, user_id, user_role_id, acting_user_id))
        if role_result.status is StepStatus.FAILED:
            report.requires_manual_followup = True
            report.record(StepResult.skipped(STEP_VACATE_UNIT, "role mapping still active"))
            return report

        vacate_result = report.record(await self._vacate_unit(unit_id, user_id, acting_user_id))
        report.unit_vacated = vacate_result.status is StepStatus.SUCCEEDED
        if not report.unit_vacated:
            # Role is gone, so the next run will not pick this pair up again
            report.requires_manual_followup = True
        return report

    async def is_owner_elsewhere(self, user_id: int, unit_id: int) -> bool:
        """True if the user still owns another unit or holds a booking on one."""
        if await self.roles.has_active_role_elsewhere(user_id, unit_id, RoleSlug.OWNER.value):
            return True
        email = await self.users.get_email(user_id)
        if email and await self.users.has_booking_elsewhere(email, unit_id):
            return True
        return False

    # ------------------------------------------------------------------
    # Best-effort steps
    # ------------------------------------------------------------------
    async def _run_local_step(
        self,
        name: str,
        unit_id: int,
        user_id: int,
        operation: Callable[[], Awaitable[dict[str, Any]]],
    ) -> StepResult:
        try:
            detail = await operation()
            await self.db.commit()
        except Exception as exc:
            await self.db.rollback()
            logger.error("%s failed for unit %s user %s: %s", name, unit_id, user_id, exc)
            return StepResult.failed(name, str(exc) or exc.__class__.__name__)
        logger.debug("%s done for unit %s user %s: %s", name, unit_id, user_id, detail)
        return StepResult.succeeded(name, **detail)

    async def _cancel_local_access_cards(self, unit_id: int, user_id: int, acting_user_id: int) -> dict[str, Any]:
        cancelled = await self.access.cancel_open_access_card_requests(
            unit_id, user_id, acting_user_id, ACCESS_CARD_CANCEL_COMMENT
        )
        return {"cancelled": cancelled}

    async def _cancel_power_of_attorney(self, unit_id: int, user_id: int, acting_user_id: int) -> dict[str, Any]:
        requests = await self.access.cancel_poa_requests(unit_id, user_id, acting_user_id)
        grants = await self.access.deactivate_poa_grants(unit_id, user_id, acting_user_id)
        return {"requests_cancelled": requests, "grants_deactivated": grants}

    async def _cancel_visitor_requests(self, unit_id: int, user_id: int, acting_user_id: int) -> dict[str, Any]:
        deactivated = await self.access.deactivate_visitor_requests(unit_id, user_id, acting_user_id)
        return {"deactivated": deactivated}

    async def _cancel_amenity_bookings(self, unit_id: int, user_id: int, acting_user_id: int) -> dict[str, Any]:
        cancelled = await self.access.cancel_amenity_bookings(
            unit_id, user_id, acting_user_id, AMENITY_CANCEL_REASON, utc_now()
        )
        return {"cancelled": cancelled}

    async def _cancel_downstream_access_cards(
        self, unit_id: int, user_id: int, integration_token: Optional[str]
    ) -> StepResult:
        """Raise cancel requests downstream for cards that are already closed locally."""
        try:
            return await self._raise_downstream_cancellations(unit_id, user_id, integration_token)
        except Exception as exc:
            logger.error(
                "Access card sync failed for unit %s user %s: %s",
                unit_id,
                user_id,
                exc,
                exc_info=True,
            )
            return StepResult.failed(STEP_ACCESS_CARDS_DOWNSTREAM, str(exc) or exc.__class__.__name__)

    async def _raise_downstream_cancellations(
        self, unit_id: int, user_id: int, integration_token: Optional[str]
    ) -> StepResult:
        try:
            grouped = await self.community.get_access_card_requests_by_unit(unit_id, user_id, integration_token)
        except DownstreamServiceError as exc:
            logger.error("Access card lookup failed for unit %s user %s: %s", unit_id, user_id, exc)
            return StepResult.failed(STEP_ACCESS_CARDS_DOWNSTREAM, exc.message)

        closed_group = grouped.get(AccessCardRequestStatus.CLOSED.value) if isinstance(grouped, dict) else None
        closed_actions = closed_group.get("accessCardActionJson") if isinstance(closed_group, dict) else None
        if closed_actions is not None and not isinstance(closed_actions, list):
            logger.error(
                "Access card listing for unit %s user %s has malformed closed actions: %r",
                unit_id,
                user_id,
                closed_actions,
            )
            return StepResult.failed(STEP_ACCESS_CARDS_DOWNSTREAM, "malformed closed access card actions")

        groups = group_cancellation_actions(closed_actions or [])
        if not any(groups.values()):
            return StepResult.skipped(STEP_ACCESS_CARDS_DOWNSTREAM, "no closed access cards to cancel")

        raised: dict[str, int] = {}
        errors: dict[str, str] = {}
        for card_kind, actions in groups.items():
            if not actions:
                continue
            try:
                await self.community.create_access_card_request(card_kind, unit_id, actions, integration_token)
                raised[card_kind] = len(actions)
            except DownstreamServiceError as exc:
                logger.error(
                    "Raising %s access card cancellation failed for unit %s user %s: %s",
                    card_kind,
                    unit_id,
                    user_id,
                    exc,
                )
                errors[card_kind] = exc.message

        if errors:
            return StepResult.failed(
                STEP_ACCESS_CARDS_DOWNSTREAM,
                "; ".join(f"{kind}: {message}" for kind, message in errors.items()),
                raised=raised,
            )
        return StepResult.succeeded(STEP_ACCESS_CARDS_DOWNSTREAM, raised=raised)

    async def _cancel_service_requests(self, unit_id: int, user_id: int, acting_user_id: int) -> StepResult:
        if not self.service_request_cancellers:
            return StepResult.skipped(STEP_SERVICE_REQUESTS, "no service request subsystems registered")

        cancelled: dict[str, int] = {}
        errors: dict[str, str] = {}
        for canceller in self.service_request_cancellers:
            try:
                cancelled[canceller.name] = await canceller.cancel(self.db, unit_id, user_id, acting_user_id)
                await self.db.commit()
            except Exception as exc:
                await self.db.rollback()
                logger.error(
                    "Service request cancellation %s failed for unit %s user %s: %s",
                    canceller.name,
                    unit_id,
                    user_id,
                    exc,
                )
                errors[canceller.name] = str(exc) or exc.__class__.__name__

        if errors:
            return StepResult.failed(
                STEP_SERVICE_REQUESTS,
                "; ".join(f"{name}: {message}" for name, message in errors.items()),
                cancelled=cancelled,
            )
        return StepResult.succeeded(STEP_SERVICE_REQUESTS, cancelled=cancelled)

    async def _approve_profile_updates_if_exited(
        self, unit_id: int, user_id: int, integration_token: Optional[str]
    ) -> StepResult:
        """
        Auto-approve pending profile updates once the user owns nothing else.

        Owners' profile changes wait on admin review; after the last unit is
        sold there is nothing left to review them against.
        """
        try:
            if await self.is_owner_elsewhere(user_id, unit_id):
                return StepResult.skipped(STEP_PROFILE_UPDATES, "user still owns or has booked another unit")
            pending = await self.users.list_pending_update_requests(user_id)
        except Exception as exc:
            await self.db.rollback()
            logger.error("Owner exit check failed for unit %s user %s: %s", unit_id, user_id, exc)
            return StepResult.failed(STEP_PROFILE_UPDATES, str(exc) or exc.__class__.__name__)

        if not pending:
            return StepResult.skipped(STEP_PROFILE_UPDATES, "no pending profile updates")

        approved = 0
        failed = 0
        for request in pending:
            endpoint, payload = build_profile_update_call(request)
            try:
                if endpoint == COMMUNICATION_ENDPOINT:
                    await self.user_service.update_communication_details_on_resale(user_id, payload, integration_token)
                else:
                    await self.user_service.update_profile_on_resale(user_id, payload, integration_token)
                approved += 1
            except DownstreamServiceError as exc:
                failed += 1
                logger.error(
                    "Approving update request %s for user %s failed: %s",
                    request.id,
                    user_id,
                    exc,
                )

        if failed:
            return StepResult.failed(
                STEP_PROFILE_UPDATES,
                f"{failed} of {len(pending)} approvals failed",
                approved=approved,
            )
        return StepResult.succeeded(STEP_PROFILE_UPDATES, approved=approved)

    # ------------------------------------------------------------------
    # Gating steps
    # ------------------------------------------------------------------
    async def _remove_role_mapping(
        self, unit_id: int, user_id: int, user_role_id: int, acting_user_id: int
    ) -> StepResult:
        try:
            roles = await self.roles.deactivate_for_unit(unit_id, user_id, acting_user_id, self._today())
            family = await self.roles.deactivate_family_member_access(unit_id, user_role_id, acting_user_id)
            services = await self.roles.deactivate_family_service_mappings(unit_id, user_id, acting_user_id)
            await self.db.commit()
        except Exception as exc:
            await self.db.rollback()
            logger.error(
                "REMOVE ROLE MAPPING FAILED | unit %s user %s user_role %s stays active, unit not vacated; "
                "manual follow-up required: %s",
                unit_id,
                user_id,
                user_role_id,
                exc,
            )
            return StepResult.failed(STEP_ROLE_MAPPING, str(exc) or exc.__class__.__name__, user_role_id=user_role_id)

        return StepResult.succeeded(
            STEP_ROLE_MAPPING,
            roles_deactivated=roles,
            family_access_deactivated=family,
            family_services_deactivated=services,
        )

    async def _vacate_unit(self, unit_id: int, user_id: int, acting_user_id: int) -> StepResult:
        try:
            updated = await self.units.set_occupancy_status(unit_id, OccupancyStatus.VACANT.value, acting_user_id)
            if not updated:
                raise UnitNotFoundError(unit_id)
            await self.db.commit()
        except Exception as exc:
            await self.db.rollback()
            logger.error(
                "VACATE UNIT FAILED | unit %s after removing user %s; occupancy needs manual correction: %s",
                unit_id,
                user_id,
                exc,
            )
            return StepResult.failed(STEP_VACATE_UNIT, str(exc) or exc.__class__.__name__)

        logger.info("Unit %s is now vacant after de-allocating user %s", unit_id, user_id)
        return StepResult.succeeded(STEP_VACATE_UNIT)
