"""
Response Envelope

Wrapper for every view handed to the frontend.

ENVELOPE CONTRACT:
==================
- Always stamped with the load generation
- Includes explicit availability
- No implicit defaults
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Generic, Optional, Tuple, TypeVar

from backend.contracts.base import ErrorCode
from backend.engine import ViewSnapshot


T = TypeVar('T')


class AvailabilityState(Enum):
    """What the frontend can show right now."""
    NO_DATA = "no_data"
    LOADING = "loading"
    AVAILABLE = "available"
    EMPTY = "empty"              # dataset had no valid rows
    FILTERED_OUT = "filtered_out"
    FAILED = "failed"


@dataclass(frozen=True)
class ViewEnvelope(Generic[T]):
    """
    Envelope for all frontend responses.

    The frontend renders `data` only when availability is AVAILABLE;
    every other state carries its reason in `message`.
    """
    generation: int
    availability: AvailabilityState
    data: Optional[T]
    message: Optional[str]
    warnings: Tuple[str, ...]
    data_as_of: datetime

    @property
    def is_renderable(self) -> bool:
        return self.availability is AvailabilityState.AVAILABLE and self.data is not None


def availability_of(snapshot: ViewSnapshot, loading: bool = False) -> AvailabilityState:
    if loading:
        return AvailabilityState.LOADING
    error = snapshot.error
    if error is not None:
        if error.code is ErrorCode.LOAD_FAILURE:
            return AvailabilityState.FAILED
        if error.code is ErrorCode.DATASET_EMPTY:
            return AvailabilityState.EMPTY
        if error.code is ErrorCode.FILTER_EMPTY:
            return AvailabilityState.FILTERED_OUT
    if snapshot.dataset is None:
        return AvailabilityState.NO_DATA
    return AvailabilityState.AVAILABLE


def envelope_for(snapshot: ViewSnapshot, data: Optional[T] = None, loading: bool = False) -> ViewEnvelope[T]:
    """Wrap a snapshot (and whatever was built from it) for the frontend."""
    availability = availability_of(snapshot, loading)
    warnings: Tuple[str, ...] = ()
    if snapshot.dataset is not None and snapshot.dataset.rejected_rows:
        warnings = (f"{len(snapshot.dataset.rejected_rows)} rows skipped during normalization",)
    if snapshot.warning is not None:
        warnings += (f"Reload failed, showing previous data: {snapshot.warning.message}",)

    return ViewEnvelope(
        generation=snapshot.generation,
        availability=availability,
        data=data if availability is AvailabilityState.AVAILABLE else None,
        message=snapshot.error.message if snapshot.error else None,
        warnings=warnings,
        data_as_of=datetime.now(timezone.utc),
    )
