"""
Interaction Contracts

Responsibility:
Define valid user actions and their intent, and translate each intent
into exactly one engine command. No execution logic here.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from backend.contracts.commands import (
    Command, DatasetLoaded, FilterChanged, ViewportChanged, ViewReset
)
from backend.core.viewport import ViewportConfig, ViewportState
from backend.engine import FilterState


class ActionType(Enum):
    """Types of user interaction."""
    # Data
    LOAD_ROWS = "load_rows"

    # Filtering
    SELECT_PI = "select_pi"
    SET_PI_COUNT = "set_pi_count"
    RESET_ALL = "reset_all"

    # Viewport
    SET_ZOOM = "set_zoom"
    DRAG_PAN = "drag_pan"
    RESIZE = "resize"
    RESET_ZOOM = "reset_zoom"


@dataclass(frozen=True)
class InteractionRequest:
    """A specific user intent."""
    action: ActionType
    payload: Mapping[str, Any] = field(default_factory=dict)
    source_component: str = "timeline"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def to_command(request: InteractionRequest, current_filter: Optional[FilterState] = None) -> Command:
    """
    Translate an interaction into an engine command.

    PI selection and PI count are combined with `current_filter` so one
    control never clears the other.
    """
    current_filter = current_filter or FilterState()
    payload = request.payload
    action = request.action

    if action is ActionType.LOAD_ROWS:
        return DatasetLoaded(rows=tuple(payload["rows"]), source=payload.get("source", "inline"))
    if action is ActionType.SELECT_PI:
        pi_name = payload.get("pi_name")
        if pi_name == "all":
            pi_name = None
        return FilterChanged(pi_name=pi_name, pi_count=current_filter.pi_count)
    if action is ActionType.SET_PI_COUNT:
        # slider value 0 means "all"
        count = payload.get("pi_count") or None
        return FilterChanged(pi_name=current_filter.pi_name, pi_count=count)
    if action is ActionType.RESET_ALL:
        return ViewReset(reset_filter=True, reset_viewport=True)
    if action is ActionType.SET_ZOOM:
        return ViewportChanged(zoom=float(payload["zoom"]))
    if action is ActionType.DRAG_PAN:
        return ViewportChanged(pan_by=float(payload["dx"]))
    if action is ActionType.RESIZE:
        return ViewportChanged(pixel_width=float(payload["pixel_width"]))
    if action is ActionType.RESET_ZOOM:
        return ViewReset(reset_filter=False, reset_viewport=True)

    raise ValueError(f"Unsupported action: {action}")


@dataclass(frozen=True)
class ZoomControlState:
    """
    State of the zoom slider UI.
    Separate from the rendered timeline.
    """
    zoom: float
    label: str             # e.g. "2.5x"
    min_zoom: float
    max_zoom: float
    can_zoom_in: bool
    can_zoom_out: bool

    @classmethod
    def of(cls, state: ViewportState, config: Optional[ViewportConfig] = None) -> "ZoomControlState":
        config = config or ViewportConfig()
        return cls(
            zoom=state.zoom,
            label=f"{state.zoom:.1f}x",
            min_zoom=config.min_zoom,
            max_zoom=config.max_zoom,
            can_zoom_in=state.zoom < config.max_zoom,
            can_zoom_out=state.zoom > config.min_zoom,
        )


@dataclass(frozen=True)
class PICountControlState:
    """State of the PI-count slider: 0 stands for "All"."""
    value: int
    maximum: int
    label: str

    @classmethod
    def of(cls, filter_state: FilterState, maximum: int, counts: Dict[int, int]) -> "PICountControlState":
        value = filter_state.pi_count or 0
        if value == 0:
            label = "All"
        else:
            label = f"{value} PI ({counts.get(value, 0)})"
        return cls(value=value, maximum=maximum, label=label)


def pi_options(pi_names: Tuple[str, ...]) -> Tuple[Tuple[str, str], ...]:
    """(value, label) options for the PI selector, "all" first."""
    return (("all", "All PIs"),) + tuple((name, name) for name in pi_names)
