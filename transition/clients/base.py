"""
Shared plumbing for downstream integration clients.

Every call is short-timeout and single-shot: failures surface as
DownstreamServiceError and the caller decides whether they matter.
"""

import logging
from typing import Any, Optional

import httpx

from transition.core.config import settings
from transition.errors import DownstreamServiceError

logger = logging.getLogger(__name__)

INTEGRATION_KEY = "transition"


class IntegrationClient:
    service_name = "integration"

    def __init__(
        self,
        base_url: str,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.DOWNSTREAM_TIMEOUT_SECONDS
        self._transport = transport

    def _headers(self, integration_token: Optional[str]) -> dict[str, str]:
        headers = {"x-integration-key": INTEGRATION_KEY}
        if integration_token:
            headers["x-tsor-token"] = integration_token
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        integration_token: Optional[str],
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        timeout = httpx.Timeout(self.timeout_seconds)
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                resp = await client.request(method, url, json=json, headers=self._headers(integration_token))
                resp.raise_for_status()
        except httpx.TimeoutException as exc:
            raise DownstreamServiceError(self.service_name, url, f"timeout after {self.timeout_seconds}s") from exc
        except httpx.HTTPStatusError as exc:
            raise DownstreamServiceError(
                self.service_name,
                url,
                f"HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:  # connection/transport errors
            raise DownstreamServiceError(self.service_name, url, str(exc) or exc.__class__.__name__) from exc

        logger.debug("%s %s -> %s", method, url, resp.status_code)
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            raise DownstreamServiceError(self.service_name, url, "invalid JSON body", status_code=resp.status_code) from exc
