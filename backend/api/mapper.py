"""
API Mapper
==========

Transforms engine snapshots and timeline views into JSON-ready dicts.
Exposes positioned structure as-is; no smoothing or re-ordering here.
"""
from typing import Any, Dict, Optional
from datetime import datetime, timezone

from ..engine import Projection, Recomputation, ViewSnapshot
from frontend.visualization.timeline import TimelineView


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


def map_dataset(dataset: Recomputation) -> Dict[str, Any]:
    """Summary plus the normalization report (with its rejected rows)."""
    return {
        "summary": dataset.summary.to_dict(),
        "report": dataset.report.to_dict(),
    }


def map_projection(projection: Projection) -> Dict[str, Any]:
    return {
        "sequence": {
            "order": list(projection.sequence.order),
            "mode": projection.sequence.mode,
            "pinned": projection.sequence.pinned,
        },
        "layout": projection.vertical.to_dict(),
        "domain": list(projection.visible_domain) if projection.window else None,
        "full_domain": list(projection.window.full_domain) if projection.window else None,
        "filter": {
            "pi_name": projection.filter.pi_name,
            "pi_count": projection.filter.pi_count,
        },
        "viewport": {
            "zoom": projection.viewport.zoom,
            "pan": projection.viewport.pan,
            "pixel_width": projection.pixel_width,
        },
        "proposal_count": len(projection.proposals),
        "total_count": projection.total_count,
    }


def map_timeline(view: TimelineView) -> Dict[str, Any]:
    return {
        "view_id": view.view_id,
        "width": view.width,
        "height": view.height,
        "arcs": [
            {
                "proposal_id": a.proposal_id,
                "source": a.source_pi,
                "target": a.target_pi,
                "path": a.path,
                "color": a.color_token,
            }
            for a in view.arcs
        ],
        "nodes": [
            {
                "proposal_id": n.proposal_id,
                "pi": n.pi,
                "cx": n.cx,
                "cy": n.cy,
                "r": n.radius,
                "color": n.color_token,
            }
            for n in view.nodes
        ],
        "labels": [{"name": l.name, "x": l.x, "y": l.y} for l in view.labels],
        "axis": {
            "granularity": view.axis.granularity,
            "ticks": [{"x": x, "label": label} for x, label in view.axis.ticks],
        } if view.axis else None,
        "legend": [{"theme": t, "color": c} for t, c in view.theme_colors],
        "visible_proposal_ids": list(view.visible_proposal_ids),
    }


def map_snapshot(snapshot: ViewSnapshot, view: Optional[TimelineView] = None) -> Dict[str, Any]:
    """Map a ViewSnapshot (and its rendered view, if any) to the view DTO."""
    return {
        "generation": snapshot.generation,
        "generated_at": _now(),
        "error": snapshot.error.to_dict() if snapshot.error else None,
        "warning": snapshot.warning.to_dict() if snapshot.warning else None,
        "dataset": map_dataset(snapshot.dataset) if snapshot.dataset else None,
        "projection": map_projection(snapshot.projection) if snapshot.projection else None,
        "timeline": map_timeline(view) if view else None,
    }
