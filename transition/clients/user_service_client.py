"""Client for the user (identity) service's resale update endpoints."""

from typing import Any, Optional

import httpx

from transition.clients.base import IntegrationClient
from transition.core.config import settings


class UserServiceClient(IntegrationClient):
    service_name = "user-service"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(base_url or settings.USER_SERVICE_URL, timeout_seconds, transport)

    async def update_profile_on_resale(
        self, user_id: int, payload: dict[str, Any], integration_token: Optional[str]
    ) -> Any:
        return await self._request(
            "PUT",
            f"/api/v1/user/update-profile-on-resale/{user_id}",
            integration_token,
            json=payload,
        )

    async def update_communication_details_on_resale(
        self, user_id: int, payload: dict[str, Any], integration_token: Optional[str]
    ) -> Any:
        return await self._request(
            "PUT",
            f"/api/v1/user/update-communication-details-on-resale/{user_id}",
            integration_token,
            json=payload,
        )
