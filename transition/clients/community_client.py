"""Client for the community service's access-control endpoints."""

from typing import Any, Optional

import httpx

from transition.clients.base import IntegrationClient
from transition.core.config import settings


class CommunityServiceClient(IntegrationClient):
    service_name = "community-service"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(base_url or settings.COMMUNITY_SERVICE_URL, timeout_seconds, transport)

    async def get_access_card_requests_by_unit(
        self, unit_id: int, user_id: int, integration_token: Optional[str]
    ) -> dict[str, Any]:
        """
        Access-card requests for the pair, grouped by status.

        Shape: {"<status>": {"accessCardActionJson": [{...}, ...]}, ...}
        """
        body = await self._request(
            "GET",
            f"/api/v1/access-card-requests/unit/{unit_id}/{user_id}",
            integration_token,
        )
        data = body.get("data") if isinstance(body, dict) else None
        return data if isinstance(data, dict) else {}

    async def create_access_card_request(
        self,
        card_kind: str,
        unit_id: int,
        actions: list[dict[str, Any]],
        integration_token: Optional[str],
    ) -> dict[str, Any]:
        body = await self._request(
            "POST",
            f"/api/v1/access-card-requests/{card_kind}",
            integration_token,
            json={"accessCardActionJson": actions, "unitId": unit_id},
        )
        return body if isinstance(body, dict) else {}
