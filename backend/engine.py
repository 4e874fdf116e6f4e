"""
Engine Orchestration Module

Coordinates normalization, indexing, sequencing, layout and viewport
while keeping every step a pure function of its inputs.

DESIGN PRINCIPLES:
==================
1. `recompute(rows)` and `project(...)` are pure; they never log or mutate
2. The engine owns the only mutable view state (dataset, filter, viewport)
3. State changes happen only through dispatched commands
4. Loads are stamped with a generation; stale completions are discarded
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .contracts.base import Error, ErrorCode
from .contracts.commands import (
    Command, DatasetLoaded, FilterChanged, ViewportChanged, ViewReset
)
from .contracts.events import AuditEventType, AuditSeverity
from .contracts.proposals import Proposal
from .core.collaboration import CollaborationIndex
from .core.layout import LayoutConfig, LayoutEngine, ProposalPosition, VerticalLayout, sort_proposals
from .core.sequencer import Sequencer, SequencerConfig, SequenceResult
from .core.viewport import (
    TickSchedule, ViewportConfig, ViewportState, ViewportTransform,
    VisibleWindow, YearExtent,
)
from .observability import ObservabilityConfig, ObservabilityEngine

from ingestion.contracts import LoadResult, LoadStatus, RejectedRow
from ingestion.fetcher import DatasetFetcher, FetcherConfig
from ingestion.normalizer import NormalizationReport, NormalizerConfig, ProposalNormalizer


@dataclass
class TimeArcConfig:
    """Unified configuration for every layer."""
    normalizer: NormalizerConfig = None
    sequencer: SequencerConfig = None
    layout: LayoutConfig = None
    viewport: ViewportConfig = None
    fetcher: FetcherConfig = None
    observability: ObservabilityConfig = None

    def __post_init__(self):
        self.normalizer = self.normalizer or NormalizerConfig()
        self.sequencer = self.sequencer or SequencerConfig()
        self.layout = self.layout or LayoutConfig()
        self.viewport = self.viewport or ViewportConfig()
        self.fetcher = self.fetcher or FetcherConfig()
        self.observability = self.observability or ObservabilityConfig()


# =============================================================================
# FILTER
# =============================================================================

@dataclass(frozen=True)
class FilterState:
    """Active filters. None means "all"."""
    pi_name: Optional[str] = None
    pi_count: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.pi_name is not None or self.pi_count is not None

    def apply(self, proposals: Iterable[Proposal]) -> Tuple[Proposal, ...]:
        result = tuple(proposals)
        if self.pi_name is not None:
            result = tuple(p for p in result if p.has_pi(self.pi_name))
        if self.pi_count is not None:
            result = tuple(p for p in result if p.pi_count == self.pi_count)
        return result


def pi_count_options(proposals: Sequence[Proposal]) -> Tuple[int, Dict[int, int]]:
    """Largest PI count and the number of proposals per PI count."""
    counts: Dict[int, int] = {}
    for proposal in proposals:
        counts[proposal.pi_count] = counts.get(proposal.pi_count, 0) + 1
    return (max(counts) if counts else 0, dict(sorted(counts.items())))


# =============================================================================
# RECOMPUTE (raw rows -> proposals + index)
# =============================================================================

@dataclass(frozen=True)
class DatasetSummary:
    """Headline statistics of a normalized dataset."""
    proposal_count: int
    pi_names: Tuple[str, ...]
    year_range: Optional[Tuple[int, int]]
    min_pis: int
    max_pis: int
    themes: Tuple[str, ...]
    rejected_count: int

    @classmethod
    def of(cls, proposals: Sequence[Proposal], rejected_count: int = 0) -> DatasetSummary:
        pis = sorted({name for p in proposals for name in p.pi_names})
        years = [p.year for p in proposals]
        counts = [p.pi_count for p in proposals]
        return cls(
            proposal_count=len(proposals),
            pi_names=tuple(pis),
            year_range=(min(years), max(years)) if years else None,
            min_pis=min(counts) if counts else 0,
            max_pis=max(counts) if counts else 0,
            themes=tuple(sorted({p.theme for p in proposals})),
            rejected_count=rejected_count,
        )

    def to_dict(self) -> dict:
        return {
            'proposal_count': self.proposal_count,
            'pi_count': len(self.pi_names),
            'pi_names': list(self.pi_names),
            'year_range': list(self.year_range) if self.year_range else None,
            'min_pis': self.min_pis,
            'max_pis': self.max_pis,
            'themes': list(self.themes),
            'rejected_count': self.rejected_count,
        }


@dataclass(frozen=True)
class Recomputation:
    """Everything derived from one set of raw rows."""
    proposals: Tuple[Proposal, ...]
    collaboration_index: CollaborationIndex
    rejected_rows: Tuple[RejectedRow, ...]
    report: NormalizationReport
    summary: DatasetSummary

    @property
    def is_empty(self) -> bool:
        return not self.proposals

    @property
    def error(self) -> Optional[Error]:
        if self.is_empty:
            return Error.create(
                ErrorCode.DATASET_EMPTY,
                "No valid data found: check the proposal_no, date_submitted and PI columns",
                rows=str(self.report.processed_count),
                rejected=str(len(self.rejected_rows)),
            )
        return None


def recompute(
    raw_rows: Iterable[Mapping[str, Any]],
    config: Optional[TimeArcConfig] = None
) -> Recomputation:
    """Normalize rows and build the collaboration index. Pure."""
    config = config or TimeArcConfig()
    report = ProposalNormalizer(config.normalizer).normalize(raw_rows)
    proposals = report.proposals
    return Recomputation(
        proposals=proposals,
        collaboration_index=CollaborationIndex.from_proposals(proposals),
        rejected_rows=tuple(report.rejected_rows),
        report=report,
        summary=DatasetSummary.of(proposals, report.rejected_count),
    )


# =============================================================================
# PROJECT (proposals + filter + viewport -> positioned view)
# =============================================================================

@dataclass(frozen=True)
class Projection:
    """
    A fully positioned view of the filtered proposals.

    Rebuilt on every filter/viewport change; never patched.
    """
    proposals: Tuple[Proposal, ...]  # filtered, render order
    collaboration_index: CollaborationIndex
    sequence: SequenceResult
    vertical: VerticalLayout
    positions: Tuple[ProposalPosition, ...]
    extent: Optional[YearExtent]
    window: Optional[VisibleWindow]
    ticks: Optional[TickSchedule]
    filter: FilterState
    viewport: ViewportState
    pixel_width: float
    total_count: int
    error: Optional[Error] = None

    @property
    def is_empty(self) -> bool:
        return not self.proposals

    @property
    def visible_domain(self) -> Optional[Tuple[float, float]]:
        return self.window.as_tuple() if self.window else None

    def position_of(self, proposal_id: str) -> Optional[ProposalPosition]:
        for position in self.positions:
            if position.proposal_id == proposal_id:
                return position
        return None


def project(
    proposals: Sequence[Proposal],
    collaboration_index: CollaborationIndex,
    filter_state: Optional[FilterState] = None,
    viewport_state: Optional[ViewportState] = None,
    pixel_width: Optional[float] = None,
    config: Optional[TimeArcConfig] = None
) -> Projection:
    """
    Sequence, lay out and window the filtered proposals. Pure.

    The collaboration index and year extent are those of the filtered set;
    `collaboration_index` is reused as-is when no filter is active.
    """
    config = config or TimeArcConfig()
    filter_state = filter_state or FilterState()
    viewport_state = viewport_state or ViewportState()
    viewport_state = viewport_state.with_zoom(viewport_state.zoom, config.viewport)
    pixel_width = pixel_width or config.viewport.default_pixel_width

    filtered = filter_state.apply(proposals)
    if filter_state.is_active:
        index = CollaborationIndex.from_proposals(filtered)
    else:
        index = collaboration_index

    sequence = Sequencer(config.sequencer).sequence(index, pinned=filter_state.pi_name)
    layout = LayoutEngine(config.layout)
    vertical = layout.place_pis(sequence.order, index)

    if not filtered:
        return Projection(
            proposals=(),
            collaboration_index=index,
            sequence=sequence,
            vertical=vertical,
            positions=(),
            extent=None,
            window=None,
            ticks=None,
            filter=filter_state,
            viewport=viewport_state,
            pixel_width=pixel_width,
            total_count=len(proposals),
            error=Error.create(
                ErrorCode.FILTER_EMPTY,
                "No proposals match the current filter",
                pi_name=str(filter_state.pi_name),
                pi_count=str(filter_state.pi_count),
            ),
        )

    transform = ViewportTransform(config.viewport)
    extent = YearExtent.of(p.year for p in filtered)
    window = transform.visible_window(viewport_state, extent, pixel_width)

    return Projection(
        proposals=tuple(sort_proposals(filtered)),
        collaboration_index=index,
        sequence=sequence,
        vertical=vertical,
        positions=layout.place_proposals(filtered, window.as_tuple(), pixel_width),
        extent=extent,
        window=window,
        ticks=transform.ticks(window, viewport_state.zoom),
        filter=filter_state,
        viewport=viewport_state,
        pixel_width=pixel_width,
        total_count=len(proposals),
    )


# =============================================================================
# ENGINE (singly-owned view state)
# =============================================================================

@dataclass(frozen=True)
class ViewSnapshot:
    """What the renderer consumes after each command."""
    generation: int
    dataset: Optional[Recomputation]
    projection: Optional[Projection]
    error: Optional[Error]
    # A failed reload that left the previous dataset in place
    warning: Optional[Error] = None

    @property
    def has_data(self) -> bool:
        return self.dataset is not None and not self.dataset.is_empty


class TimeArcEngine:
    """
    Owns the current dataset, filter and viewport.

    FLOW:
    =====
    raw rows -> recompute -> (filter, viewport) -> project -> renderer

    Every mutation goes through `dispatch`; async loads resolve to a
    DatasetLoaded command only if no newer load has started meanwhile.
    """

    def __init__(
        self,
        config: Optional[TimeArcConfig] = None,
        fetcher: Optional[DatasetFetcher] = None,
        observability: Optional[ObservabilityEngine] = None
    ):
        self._config = config or TimeArcConfig()
        self._fetcher = fetcher or DatasetFetcher(self._config.fetcher)
        self._observability = observability or ObservabilityEngine(self._config.observability)

        self._dataset: Optional[Recomputation] = None
        self._filter = FilterState()
        self._viewport = ViewportState()
        self._pixel_width = self._config.viewport.default_pixel_width
        self._generation = 0
        self._load_error: Optional[Error] = None

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def config(self) -> TimeArcConfig:
        return self._config

    @property
    def observability(self) -> ObservabilityEngine:
        return self._observability

    @property
    def dataset(self) -> Optional[Recomputation]:
        return self._dataset

    @property
    def filter_state(self) -> FilterState:
        return self._filter

    @property
    def viewport_state(self) -> ViewportState:
        return self._viewport

    @property
    def pixel_width(self) -> float:
        return self._pixel_width

    @property
    def generation(self) -> int:
        return self._generation

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def dispatch(self, command: Command) -> ViewSnapshot:
        """Apply one command and return the resulting view."""
        if isinstance(command, DatasetLoaded):
            self._on_dataset_loaded(command)
            return self.snapshot()

        if self._dataset is not None and not self._dataset.is_empty:
            # A failed reload is reported once over the kept dataset
            self._load_error = None

        if isinstance(command, FilterChanged):
            self._filter = FilterState(pi_name=command.pi_name, pi_count=command.pi_count)
            self._observability.log_audit(
                "filter_changed", AuditEventType.SEQUENCING, layer="core",
                pi_name=command.pi_name, pi_count=command.pi_count,
            )
        elif isinstance(command, ViewportChanged):
            self._on_viewport_changed(command)
        elif isinstance(command, ViewReset):
            if command.reset_filter:
                self._filter = FilterState()
            if command.reset_viewport:
                self._viewport = ViewportState.reset()
            self._observability.log_audit(
                "view_reset", AuditEventType.VIEWPORT, layer="viewport",
                filter=command.reset_filter, viewport=command.reset_viewport,
            )
        else:
            raise TypeError(f"Unknown command: {type(command).__name__}")

        return self.snapshot()

    def _on_dataset_loaded(self, command: DatasetLoaded):
        if command.generation is None:
            # Inline data supersedes any load still in flight
            self._generation += 1
        elif command.generation != self._generation:
            self._discard_stale(command.source, command.generation)
            return

        dataset = recompute(command.rows, self._config)
        self._dataset = dataset
        self._load_error = None

        if self._filter.pi_name is not None and self._filter.pi_name not in dataset.summary.pi_names:
            self._filter = replace(self._filter, pi_name=None)

        obs = self._observability
        for rejected in dataset.rejected_rows:
            error = rejected.error
            obs.log_audit(
                "row_rejected", AuditEventType.NORMALIZATION, layer="normalization",
                severity=AuditSeverity.WARNING, entity_id=rejected.proposal_id or None,
                code=error.code.name, row=rejected.row_index, message=error.message,
            )
        obs.log_audit(
            "dataset_loaded", AuditEventType.INGESTION, layer="ingestion",
            severity=AuditSeverity.WARNING if dataset.is_empty else AuditSeverity.INFO,
            source=command.source, generation=self._generation,
            proposals=len(dataset.proposals), rejected=len(dataset.rejected_rows),
        )
        obs.collect_metric("rows_processed_total", dataset.report.processed_count)
        obs.collect_metric("rows_rejected_total", dataset.report.rejected_count)
        obs.collect_metric("proposals_loaded", len(dataset.proposals))

    def _on_viewport_changed(self, command: ViewportChanged):
        if command.pixel_width is not None:
            if command.pixel_width <= 0:
                raise ValueError("pixel_width must be positive")
            self._pixel_width = command.pixel_width

        state = self._viewport
        if command.zoom is not None:
            state = state.with_zoom(command.zoom, self._config.viewport)
        if command.pan is not None:
            state = state.with_pan(command.pan)
        if command.pan_by is not None:
            state = state.pan_by(command.pan_by)

        extent = self._current_extent()
        if extent is not None:
            state = ViewportTransform(self._config.viewport).settle(state, extent, self._pixel_width)

        self._viewport = state
        self._observability.log_audit(
            "viewport_changed", AuditEventType.VIEWPORT, layer="viewport",
            zoom=state.zoom, pan=state.pan,
        )

    def _current_extent(self) -> Optional[YearExtent]:
        if self._dataset is None:
            return None
        return YearExtent.of(p.year for p in self._filter.apply(self._dataset.proposals))

    # =========================================================================
    # VIEW
    # =========================================================================

    def snapshot(self) -> ViewSnapshot:
        """Project the current state. Recomputed lazily on every call."""
        dataset = self._dataset
        if dataset is None or dataset.is_empty:
            error = self._load_error or (dataset.error if dataset is not None else None)
            return ViewSnapshot(self._generation, dataset, None, error)

        projection = project(
            dataset.proposals,
            dataset.collaboration_index,
            self._filter,
            self._viewport,
            self._pixel_width,
            self._config,
        )
        self._observability.collect_metric("sequence_length", len(projection.sequence))
        self._observability.collect_metric("layout_height_px", projection.vertical.height)
        return ViewSnapshot(
            self._generation,
            dataset,
            projection,
            projection.error,
            self._load_error,
        )

    # =========================================================================
    # LOADING
    # =========================================================================

    def begin_load(self) -> int:
        """Start a load; any earlier in-flight load becomes stale."""
        self._generation += 1
        return self._generation

    def complete_load(self, generation: int, result: LoadResult) -> LoadResult:
        """Apply a finished load if it is still the latest one."""
        if generation != self._generation:
            self._discard_stale(result.source, generation)
            return replace(
                result,
                status=LoadStatus.STALE,
                rows=(),
                generation=generation,
                error=Error.create(ErrorCode.STALE_LOAD, "Superseded by a newer load", source=result.source),
            )

        if not result.is_success:
            self._load_error = result.error
            self._observability.log_audit(
                "load_failed", AuditEventType.INGESTION, layer="ingestion",
                severity=AuditSeverity.ERROR, source=result.source,
                status=result.status.value, message=result.error.message if result.error else "",
            )
            return replace(result, generation=generation)

        self.dispatch(DatasetLoaded(rows=result.rows, source=result.source, generation=generation))
        return replace(result, generation=generation)

    async def load_url(self, url: Optional[str] = None) -> LoadResult:
        generation = self.begin_load()
        result = await self._fetcher.fetch(url)
        return self.complete_load(generation, result)

    async def load_file(self, path: Path) -> LoadResult:
        generation = self.begin_load()
        result = await self._fetcher.read_file(path)
        return self.complete_load(generation, result)

    def _discard_stale(self, source: str, generation: int):
        self._observability.log_audit(
            "stale_load_discarded", AuditEventType.INGESTION, layer="ingestion",
            severity=AuditSeverity.WARNING, source=source,
            generation=generation, current=self._generation,
        )
        self._observability.collect_metric("loads_discarded_total", 1)
