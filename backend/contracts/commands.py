"""
View Commands

Explicit state transitions dispatched to the engine.
Each command is pure intent: the engine decides what it means.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple, Union


@dataclass(frozen=True)
class DatasetLoaded:
    """A complete set of raw rows replaces the current dataset wholesale."""
    rows: Tuple[Mapping[str, Any], ...]
    source: str = "inline"
    generation: Optional[int] = None


@dataclass(frozen=True)
class FilterChanged:
    """
    New filter selection.

    None means "all" for both fields.
    """
    pi_name: Optional[str] = None
    pi_count: Optional[int] = None


@dataclass(frozen=True)
class ViewportChanged:
    """
    Zoom/pan update.

    `zoom` and `pan` set absolute values; `pan_by` is a drag delta in pixels
    applied after them. Fields left as None are unchanged.
    """
    zoom: Optional[float] = None
    pan: Optional[float] = None
    pan_by: Optional[float] = None
    pixel_width: Optional[float] = None


@dataclass(frozen=True)
class ViewReset:
    """Clear filters and reset zoom and pan together."""
    reset_filter: bool = True
    reset_viewport: bool = True


Command = Union[DatasetLoaded, FilterChanged, ViewportChanged, ViewReset]
