"""
Schemas for the de-allocation pipeline.

These are plain value objects passed between the resolver, the saga executor
and the daily runner; none of them are persisted.
"""

import enum
from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SourceKind(str, enum.Enum):
    """Which occupancy term record made a pair eligible."""

    OWNER_MOVE_OUT = "owner-move-out"
    TENANT_LEASE = "tenant-lease"
    COMPANY_LEASE = "company-lease"
    OWNER_PERMIT = "owner-permit"


class DueUnitUserPair(BaseModel):
    model_config = ConfigDict(frozen=True)

    unit_id: int
    user_id: int
    source_kind: SourceKind


class StepStatus(str, enum.Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


class StepResult(BaseModel):
    name: str
    status: StepStatus
    reason: Optional[str] = None
    detail: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def succeeded(cls, name: str, **detail: Any) -> "StepResult":
        return cls(name=name, status=StepStatus.SUCCEEDED, detail=detail)

    @classmethod
    def skipped(cls, name: str, reason: str) -> "StepResult":
        return cls(name=name, status=StepStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, name: str, reason: str, **detail: Any) -> "StepResult":
        return cls(name=name, status=StepStatus.FAILED, reason=reason, detail=detail)


class RevocationReport(BaseModel):
    """Outcome of revoking one (unit, user) pair, one entry per step that ran."""

    unit_id: int
    user_id: int
    source_kind: Optional[SourceKind] = None
    steps: list[StepResult] = Field(default_factory=list)
    already_revoked: bool = False
    requires_manual_followup: bool = False
    unit_vacated: bool = False

    def record(self, result: StepResult) -> StepResult:
        self.steps.append(result)
        return result

    def step(self, name: str) -> Optional[StepResult]:
        for result in self.steps:
            if result.name == name:
                return result
        return None

    @property
    def step_names(self) -> list[str]:
        return [result.name for result in self.steps]

    @property
    def failed_steps(self) -> list[StepResult]:
        return [result for result in self.steps if result.status == StepStatus.FAILED]


class DeallocationRunSummary(BaseModel):
    """Counters logged at the end of a daily run."""

    as_of: date
    granted: bool = False
    pairs_found: int = 0
    revoked: int = 0
    already_revoked: int = 0
    needs_followup: int = 0
    pairs_with_failed_steps: int = 0
    aborted_reason: Optional[str] = None
