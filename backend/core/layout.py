"""
Layout Engine
=============

Positions PIs vertically and proposals horizontally.

VERTICAL:
Consecutive PIs in sequence order are separated by
`count * unit_collab` when they collaborate, `unit_default` otherwise.

HORIZONTAL:
Proposals sit at their fractional year; pixel x is derived from the
visible domain on every projection.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..contracts.proposals import Proposal
from .collaboration import CollaborationIndex


@dataclass
class LayoutConfig:
    """Pixel units and margins of the chart."""
    unit_collab: float = 10.0
    unit_default: float = 100.0
    margin_top: float = 80.0
    label_offset: float = 40.0
    margin_bottom: float = 50.0
    bottom_padding: float = 50.0
    min_height: float = 600.0
    margin_left: float = 200.0
    margin_right: float = 50.0

    def __post_init__(self):
        if self.unit_collab <= 0 or self.unit_default <= 0:
            raise ValueError("layout units must be positive")
        for name in ("margin_top", "label_offset", "margin_bottom", "bottom_padding",
                     "margin_left", "margin_right", "min_height"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")

    @property
    def baseline(self) -> float:
        return self.margin_top + self.label_offset


@dataclass(frozen=True)
class VerticalLayout:
    """PI -> y, strictly increasing in sequence order."""
    order: Tuple[str, ...]
    y: Tuple[float, ...]
    gaps: Tuple[float, ...]
    height: float

    def y_of(self, pi: str) -> Optional[float]:
        try:
            return self.y[self.order.index(pi)]
        except ValueError:
            return None

    def as_mapping(self) -> Dict[str, float]:
        return dict(zip(self.order, self.y))

    def to_dict(self) -> dict:
        return {
            'order': list(self.order),
            'y': list(self.y),
            'gaps': list(self.gaps),
            'height': self.height,
        }


@dataclass(frozen=True)
class ProposalPosition:
    """Horizontal placement of one proposal."""
    proposal_id: str
    fractional_year: float
    x: float


# =============================================================================
# PURE HELPERS
# =============================================================================

def fractional_year(proposal: Proposal) -> float:
    """
    Year plus the elapsed fraction of that year.

    Undated proposals sit at mid-year.
    """
    if proposal.date is None:
        return proposal.year + 0.5
    year = proposal.date.year
    start = datetime(year, 1, 1)
    end = datetime(year + 1, 1, 1)
    return year + (proposal.date - start) / (end - start)


def proposal_sort_key(proposal: Proposal) -> tuple:
    """
    Render order: dated proposals by date, then undated by year and id.
    """
    if proposal.date is not None:
        return (0, proposal.date, proposal.proposal_id)
    return (1, datetime(proposal.year, 1, 1), proposal.proposal_id)


def sort_proposals(proposals: Iterable[Proposal]) -> List[Proposal]:
    return sorted(proposals, key=proposal_sort_key)


# =============================================================================
# ENGINE
# =============================================================================

class LayoutEngine:
    """Computes vertical and horizontal placements."""

    def __init__(self, config: Optional[LayoutConfig] = None):
        self._config = config or LayoutConfig()

    @property
    def config(self) -> LayoutConfig:
        return self._config

    def place_pis(
        self,
        order: Sequence[str],
        index: CollaborationIndex
    ) -> VerticalLayout:
        """Walk the sequence accumulating collaboration-dependent gaps."""
        config = self._config
        if not order:
            return VerticalLayout(order=(), y=(), gaps=(), height=config.min_height)

        counts = np.array(
            [index.count(a, b) for a, b in zip(order, order[1:])],
            dtype=float,
        )
        gaps = np.where(counts > 0, counts * config.unit_collab, config.unit_default)
        y = config.baseline + np.concatenate(([0.0], np.cumsum(gaps)))

        last = float(y[-1])
        height = max(config.min_height, last + config.margin_bottom + config.bottom_padding)

        return VerticalLayout(
            order=tuple(order),
            y=tuple(float(v) for v in y),
            gaps=tuple(float(g) for g in gaps),
            height=height,
        )

    def x_for(
        self,
        value: float,
        domain: Tuple[float, float],
        pixel_width: float
    ) -> float:
        """Map a fractional year to pixel x inside the plot area."""
        start, end = domain
        return self._config.margin_left + (value - start) / (end - start) * pixel_width

    def place_proposals(
        self,
        proposals: Iterable[Proposal],
        domain: Tuple[float, float],
        pixel_width: float
    ) -> Tuple[ProposalPosition, ...]:
        """Positions in render order (see proposal_sort_key)."""
        positions = []
        for proposal in sort_proposals(proposals):
            fy = fractional_year(proposal)
            positions.append(ProposalPosition(
                proposal_id=proposal.proposal_id,
                fractional_year=fy,
                x=self.x_for(fy, domain, pixel_width),
            ))
        return tuple(positions)
