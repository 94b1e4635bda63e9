"""Structured error types shared across services."""

from __future__ import annotations

from typing import Any, Dict, Optional


def build_error_payload(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload = {"error": {"code": code, "message": message}}
    if details is not None:
        payload["error"]["details"] = details
    return payload


class AppError(Exception):
    """Application-scoped error with a stable code and structured payload."""

    code = "UNKNOWN_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, code: Optional[str] = None):
        super().__init__(message)
        if code is not None:
            self.code = code
        self.message = message
        self.details = details
        self.payload = build_error_payload(self.code, message, details)


class UnitNotFoundError(AppError):
    """Raised when a unit row required for numbering or revocation does not exist."""

    code = "UNIT_NOT_FOUND"

    def __init__(self, unit_id: int):
        super().__init__(f"Unit {unit_id} not found", details={"unit_id": unit_id})
        self.unit_id = unit_id


class DownstreamServiceError(AppError):
    """Raised when an integration call fails (timeout, transport or non-2xx)."""

    code = "DOWNSTREAM_ERROR"

    def __init__(self, service: str, url: str, reason: str, status_code: Optional[int] = None):
        super().__init__(
            f"{service} call failed: {reason}",
            details={"service": service, "url": url, "status_code": status_code},
        )
        self.service = service
        self.url = url
        self.status_code = status_code
