"""
Viewport Transform
==================

Maps a zoom/pan state and the dataset's year extent to a visible
time window and a tick schedule.

GUARANTEES:
- Visible window is always inside [min_year - 1, max_year + 1]
- Window width is full_width / k unless clamped to the full domain
- Clamping shifts the window, it never rescales it
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional, Tuple
import math

import numpy as np


@dataclass
class ViewportConfig:
    """Zoom bounds and tick thresholds."""
    min_zoom: float = 0.5
    max_zoom: float = 10.0
    quarter_threshold: float = 1.5
    month_threshold: float = 4.5
    default_pixel_width: float = 1200.0

    def __post_init__(self):
        if not 0 < self.min_zoom <= self.max_zoom:
            raise ValueError("zoom bounds must satisfy 0 < min_zoom <= max_zoom")
        if self.default_pixel_width <= 0:
            raise ValueError("default_pixel_width must be positive")


@dataclass(frozen=True)
class ViewportState:
    """Zoom factor k and pan offset in pixels. Reset together."""
    zoom: float = 1.0
    pan: float = 0.0

    def with_zoom(self, zoom: float, config: ViewportConfig) -> ViewportState:
        return replace(self, zoom=min(config.max_zoom, max(config.min_zoom, zoom)))

    def with_pan(self, pan: float) -> ViewportState:
        return replace(self, pan=pan)

    def pan_by(self, dx: float) -> ViewportState:
        return replace(self, pan=self.pan + dx)

    @staticmethod
    def reset() -> ViewportState:
        return ViewportState()


@dataclass(frozen=True)
class YearExtent:
    """Min and max proposal year of the projected set."""
    min_year: int
    max_year: int

    @classmethod
    def of(cls, years: Iterable[int]) -> Optional[YearExtent]:
        years = list(years)
        if not years:
            return None
        return cls(min(years), max(years))

    @property
    def full_domain(self) -> Tuple[float, float]:
        return (self.min_year - 1.0, self.max_year + 1.0)


@dataclass(frozen=True)
class VisibleWindow:
    """The clamped visible domain in fractional years."""
    start: float
    end: float
    full_domain: Tuple[float, float]
    clamped: bool

    @property
    def width(self) -> float:
        return self.end - self.start

    def as_tuple(self) -> Tuple[float, float]:
        return (self.start, self.end)

    def contains(self, value: float) -> bool:
        return self.start <= value <= self.end


class TickGranularity(Enum):
    YEAR = "year"
    QUARTER = "quarter"
    MONTH = "month"

    @property
    def steps(self) -> int:
        return {"year": 1, "quarter": 4, "month": 12}[self.value]


@dataclass(frozen=True)
class Tick:
    value: float
    label: str


@dataclass(frozen=True)
class TickSchedule:
    granularity: TickGranularity
    ticks: Tuple[Tick, ...]

    @property
    def values(self) -> Tuple[float, ...]:
        return tuple(t.value for t in self.ticks)

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(t.label for t in self.ticks)


def _label(granularity: TickGranularity, year: int, sub: int) -> str:
    if granularity is TickGranularity.QUARTER:
        return f"Q{sub + 1}/{year}"
    if granularity is TickGranularity.MONTH:
        return f"{sub + 1:02d}/{year}"
    return str(year)


class ViewportTransform:
    """
    Derives the visible window and ticks from a ViewportState.

    `pixel_width` is the width of the plot area (excluding margins).
    """

    def __init__(self, config: Optional[ViewportConfig] = None):
        self._config = config or ViewportConfig()

    @property
    def config(self) -> ViewportConfig:
        return self._config

    def visible_window(
        self,
        state: ViewportState,
        extent: YearExtent,
        pixel_width: float
    ) -> VisibleWindow:
        if pixel_width <= 0:
            raise ValueError("pixel_width must be positive")

        lo, hi = extent.full_domain
        full_width = hi - lo
        center = (lo + hi) / 2
        half_width = full_width / (2 * state.zoom)

        if 2 * half_width >= full_width:
            return VisibleWindow(lo, hi, (lo, hi), clamped=2 * half_width > full_width)

        offset = -state.pan / (pixel_width / full_width)
        start = center - half_width + offset
        end = center + half_width + offset
        clamped = False

        if start < lo:
            end += lo - start
            start = lo
            clamped = True
        if end > hi:
            start -= end - hi
            end = hi
            clamped = True

        return VisibleWindow(start, end, (lo, hi), clamped)

    def settle(
        self,
        state: ViewportState,
        extent: YearExtent,
        pixel_width: float
    ) -> ViewportState:
        """Return a state whose pan reproduces the clamped window exactly."""
        window = self.visible_window(state, extent, pixel_width)
        lo, hi = window.full_domain
        full_width = hi - lo
        if window.width >= full_width:
            return state.with_pan(0.0)
        unclamped_start = (lo + hi) / 2 - window.width / 2
        offset = window.start - unclamped_start
        return state.with_pan(-offset * (pixel_width / full_width))

    def granularity(self, zoom: float) -> TickGranularity:
        if zoom >= self._config.month_threshold:
            return TickGranularity.MONTH
        if zoom >= self._config.quarter_threshold:
            return TickGranularity.QUARTER
        return TickGranularity.YEAR

    def ticks(self, window: VisibleWindow, zoom: float) -> TickSchedule:
        """Ticks at year + sub/steps falling inside the window."""
        granularity = self.granularity(zoom)
        steps = granularity.steps

        years = np.arange(math.floor(window.start), math.ceil(window.end) + 1)
        subs = np.arange(steps)
        year_grid, sub_grid = np.meshgrid(years, subs, indexing="ij")
        values = year_grid + sub_grid / steps
        mask = (values >= window.start) & (values <= window.end)

        ticks = tuple(
            Tick(float(v), _label(granularity, int(y), int(s)))
            for v, y, s in zip(values[mask], year_grid[mask], sub_grid[mask])
        )
        return TickSchedule(granularity, ticks)
