"""
Schemas package.

Import all schemas here for easy access.
"""

from transition.schemas.deallocation import (
    SourceKind,
    DueUnitUserPair,
    StepStatus,
    StepResult,
    RevocationReport,
    DeallocationRunSummary,
)

__all__ = [
    "SourceKind",
    "DueUnitUserPair",
    "StepStatus",
    "StepResult",
    "RevocationReport",
    "DeallocationRunSummary",
]
