"""
Core Layout Engine

RESPONSIBILITY: Collaboration counting, PI ordering, positions, visible window
ALLOWED INPUTS: Proposals (from ingestion), FilterState, ViewportState
OUTPUTS: CollaborationIndex, SequenceResult, VerticalLayout, VisibleWindow

WHAT THIS LAYER MUST NOT DO:
============================
- Parse or normalize raw rows (ingestion layer's job)
- Hold mutable view state (engine's job)
- Log or record metrics (engine's job)

BOUNDARY ENFORCEMENT:
=====================
- Every operation is a pure function of its arguments
- Every result is a new immutable object
"""

from .collaboration import CollaborationIndex
from .layout import (
    LayoutConfig, LayoutEngine, ProposalPosition, VerticalLayout,
    fractional_year, proposal_sort_key, sort_proposals,
)
from .sequencer import Placement, SequenceResult, Sequencer, SequencerConfig
from .viewport import (
    Tick, TickGranularity, TickSchedule, ViewportConfig, ViewportState,
    ViewportTransform, VisibleWindow, YearExtent,
)

__all__ = [
    'CollaborationIndex',
    'LayoutConfig', 'LayoutEngine', 'ProposalPosition', 'VerticalLayout',
    'fractional_year', 'proposal_sort_key', 'sort_proposals',
    'Placement', 'SequenceResult', 'Sequencer', 'SequencerConfig',
    'Tick', 'TickGranularity', 'TickSchedule', 'ViewportConfig', 'ViewportState',
    'ViewportTransform', 'VisibleWindow', 'YearExtent',
]
