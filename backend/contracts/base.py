"""
Base Contracts and Shared Types

The error taxonomy shared by every layer.

BOUNDARY ENFORCEMENT:
=====================
- Errors are values: they are returned, stored and serialized, never raised
- Only programmer errors (bad config, bad arguments) raise ordinary exceptions
- All types are frozen dataclasses
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Tuple
from enum import Enum, auto


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """Every recoverable condition of the load path and the view."""
    # Row-level (non-fatal, row skipped)
    UNPARSEABLE_DATE = auto()
    YEAR_OUT_OF_RANGE = auto()
    MISSING_PROPOSAL_ID = auto()

    # Dataset-level (surfaced to the user-visible layer)
    DATASET_EMPTY = auto()
    LOAD_FAILURE = auto()
    STALE_LOAD = auto()

    # View-level
    FILTER_EMPTY = auto()


@dataclass(frozen=True)
class Error:
    """
    An error as data: a code, a human-readable message and string context.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @staticmethod
    def create(code: ErrorCode, message: str, **context: object) -> Error:
        return Error(
            code=code,
            message=message,
            timestamp=datetime.now(timezone.utc),
            context=tuple(sorted((k, str(v)) for k, v in context.items()))
        )

    def to_dict(self) -> dict:
        return {
            'code': self.code.name,
            'message': self.message,
            'timestamp': self.timestamp.isoformat(),
            'context': dict(self.context),
        }
