"""
Timeline Visualization Contracts

Responsibility:
Deterministic transformation of a Projection into a renderable TimeArc view.
Input: Projection (positioned state) -> Output: TimelineView (geometry)

Arc endpoints are recomputed from the vertical layout and the current
visible window on every build; no geometry is ever read back from a
previously rendered view.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import hashlib

from backend.core.layout import LayoutConfig
from backend.engine import Projection


# d3.schemeCategory10
CATEGORY10: Tuple[str, ...] = (
    "#1f77b4", "#ff7f0e", "#2ca02c", "#d62728", "#9467bd",
    "#8c564b", "#e377c2", "#7f7f7f", "#bcbd22", "#17becf",
)

MAX_ARC_WIDTH = 80.0
ARC_WIDTH_RATIO = 0.35
CONTROL_RATIO = 0.2


def _fmt(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


@dataclass(frozen=True)
class RenderedArc:
    """A curved connection between two PIs of one proposal."""
    proposal_id: str
    source_pi: str
    target_pi: str
    x: float
    y1: float
    y2: float
    control_x: float
    control_y1: float
    control_y2: float
    color_token: str

    @property
    def path(self) -> str:
        return (
            f"M {_fmt(self.x)},{_fmt(self.y1)} "
            f"C {_fmt(self.control_x)},{_fmt(self.control_y1)} "
            f"{_fmt(self.control_x)},{_fmt(self.control_y2)} "
            f"{_fmt(self.x)},{_fmt(self.y2)}"
        )


@dataclass(frozen=True)
class RenderedNode:
    """A proposal marker on one PI's row."""
    proposal_id: str
    pi: str
    cx: float
    cy: float
    radius: float
    color_token: str
    single_pi: bool


@dataclass(frozen=True)
class RenderedPILabel:
    name: str
    x: float
    y: float


@dataclass(frozen=True)
class TimeAxis:
    """The rendered time axis."""
    start: float
    end: float
    granularity: str
    ticks: Tuple[Tuple[float, str], ...]  # (pixel x, label)


@dataclass(frozen=True)
class TimelineView:
    """
    Fully calculated timeline visualization.

    DETERMINISTIC:
    Same projection = identical view.
    No layout logic belongs in the renderer - all pre-calculated here.
    """
    view_id: str
    width: float
    height: float
    arcs: Tuple[RenderedArc, ...]
    nodes: Tuple[RenderedNode, ...]
    labels: Tuple[RenderedPILabel, ...]
    axis: Optional[TimeAxis]
    theme_colors: Tuple[Tuple[str, str], ...]
    visible_proposal_ids: Tuple[str, ...]


def theme_palette(themes) -> Dict[str, str]:
    """Sorted themes mapped onto the category-10 cycle."""
    return {
        theme: CATEGORY10[i % len(CATEGORY10)]
        for i, theme in enumerate(sorted(set(themes)))
    }


def arc_between(proposal_id: str, source: str, target: str, x: float,
                y1: float, y2: float, color: str) -> RenderedArc:
    distance = abs(y2 - y1)
    arc_width = min(distance * ARC_WIDTH_RATIO, MAX_ARC_WIDTH)
    return RenderedArc(
        proposal_id=proposal_id,
        source_pi=source,
        target_pi=target,
        x=x,
        y1=y1,
        y2=y2,
        control_x=x + arc_width * 0.5,
        control_y1=y1 + (y2 - y1) * CONTROL_RATIO,
        control_y2=y2 - (y2 - y1) * CONTROL_RATIO,
        color_token=color,
    )


def build_timeline_view(
    projection: Projection,
    layout_config: Optional[LayoutConfig] = None
) -> TimelineView:
    """Turn a projection into arcs, nodes, labels and an axis."""
    config = layout_config or LayoutConfig()
    y_of = projection.vertical.as_mapping()
    palette = theme_palette(p.theme for p in projection.proposals)
    positions = {pos.proposal_id: pos for pos in projection.positions}

    arcs: List[RenderedArc] = []
    nodes: List[RenderedNode] = []
    visible: List[str] = []

    for proposal in projection.proposals:
        position = positions[proposal.proposal_id]
        color = palette[proposal.theme]
        x = position.x

        if projection.window and projection.window.contains(position.fractional_year):
            visible.append(proposal.proposal_id)

        placed = sorted(
            ((y_of[name], name) for name in proposal.distinct_pis if name in y_of)
        )
        if not placed:
            continue

        if len(placed) == 1:
            y, name = placed[0]
            nodes.append(RenderedNode(proposal.proposal_id, name, x, y, 4.0, color, True))
            continue

        for i in range(len(placed)):
            for j in range(i + 1, len(placed)):
                (y1, source), (y2, target) = placed[i], placed[j]
                arcs.append(arc_between(proposal.proposal_id, source, target, x, y1, y2, color))

        radius = 3.0 if len(placed) > 3 else 3.5
        for y, name in placed:
            nodes.append(RenderedNode(proposal.proposal_id, name, x, y, radius, color, False))

    labels = tuple(
        RenderedPILabel(name, config.margin_left - 10, y)
        for name, y in zip(projection.vertical.order, projection.vertical.y)
    )

    axis = None
    if projection.window and projection.ticks:
        domain = projection.window.as_tuple()
        span = domain[1] - domain[0]
        axis = TimeAxis(
            start=domain[0],
            end=domain[1],
            granularity=projection.ticks.granularity.value,
            ticks=tuple(
                (config.margin_left + (t.value - domain[0]) / span * projection.pixel_width, t.label)
                for t in projection.ticks.ticks
            ),
        )

    seed = "|".join((
        ",".join(projection.sequence.order),
        repr(projection.visible_domain),
        repr(projection.filter),
        repr(projection.pixel_width),
    ))
    view_id = "view_" + hashlib.sha256(seed.encode("utf-8")).hexdigest()[:16]

    return TimelineView(
        view_id=view_id,
        width=config.margin_left + projection.pixel_width + config.margin_right,
        height=projection.vertical.height,
        arcs=tuple(arcs),
        nodes=tuple(nodes),
        labels=labels,
        axis=axis,
        theme_colors=tuple(sorted(palette.items())),
        visible_proposal_ids=tuple(visible),
    )
