"""
Presentation Contracts

Responsibility:
Define ViewModel contracts for pure UI components (tooltips, legend,
loading and empty states) and the builders that fill them from proposals.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from backend.contracts.proposals import Proposal
from frontend.state import AvailabilityState, ViewEnvelope
from frontend.visualization.timeline import theme_palette


@dataclass(frozen=True)
class PIRowViewModel:
    """One line of a proposal's PI table."""
    name: str
    credit: str
    first: str   # formatted currency or "-"
    total: str


@dataclass(frozen=True)
class ProposalCardViewModel:
    """ViewModel for one proposal inside a tooltip."""
    proposal_id: str
    title: str
    date_label: str
    sponsor: str
    theme: str
    theme_color: str
    pis: Tuple[PIRowViewModel, ...]


@dataclass(frozen=True)
class ProposalTooltipViewModel:
    """
    Tooltip for a hovered proposal.

    Lists every proposal on the same day that shares a PI with the hovered
    one; `header` is set only when there is more than one.
    """
    header: Optional[str]
    cards: Tuple[ProposalCardViewModel, ...]
    highlighted_pis: Tuple[str, ...]


@dataclass(frozen=True)
class PISummaryViewModel:
    """Tooltip shown when hovering a PI label."""
    name: str
    total_proposals: int
    collaborator_count: int
    active_years: str            # e.g. "2019 - 2023" or "N/A"
    collaborators: Tuple[str, ...]


@dataclass(frozen=True)
class LegendEntryViewModel:
    theme: str
    color: str


@dataclass(frozen=True)
class LoadingStateViewModel:
    """Unified loading state."""
    message: str
    progress: Optional[float]
    is_blocking: bool


@dataclass(frozen=True)
class EmptyStateViewModel:
    title: str
    detail: Optional[str]


# =============================================================================
# FORMATTING
# =============================================================================

def format_currency(value: float) -> str:
    """USD with cents; zero renders as a dash."""
    if not value:
        return "-"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_date(proposal: Proposal) -> str:
    if proposal.date is None:
        return proposal.date_label or "N/A"
    return f"{proposal.date:%B} {proposal.date.day}, {proposal.date.year}"


def _same_day(a: Proposal, b: Proposal) -> bool:
    if a.date is not None and b.date is not None:
        return a.date.date() == b.date.date()
    if a.date is None and b.date is None:
        return bool(a.date_label) and a.date_label == b.date_label
    return False


# =============================================================================
# BUILDERS
# =============================================================================

def same_date_group(proposals: Sequence[Proposal], hovered: Proposal) -> List[Proposal]:
    """Proposals on the hovered proposal's day sharing at least one PI."""
    group = [
        p for p in proposals
        if _same_day(hovered, p) and hovered.distinct_pis & p.distinct_pis
    ]
    return group if len(group) > 1 else [hovered]


def proposal_card(proposal: Proposal, theme_color: str) -> ProposalCardViewModel:
    return ProposalCardViewModel(
        proposal_id=proposal.proposal_id,
        title=proposal.title,
        date_label=format_date(proposal),
        sponsor=proposal.sponsor or "N/A",
        theme=proposal.theme,
        theme_color=theme_color,
        pis=tuple(
            PIRowViewModel(c.name, f"{c.credit:g}", format_currency(c.first), format_currency(c.total))
            for c in proposal.contributions
        ),
    )


def proposal_tooltip(proposals: Sequence[Proposal], hovered: Proposal) -> ProposalTooltipViewModel:
    palette = theme_palette(p.theme for p in proposals)
    group = same_date_group(proposals, hovered)
    header = None
    if len(group) > 1:
        header = f"{len(group)} Proposals on {format_date(hovered)}"

    return ProposalTooltipViewModel(
        header=header,
        cards=tuple(proposal_card(p, palette.get(p.theme, "#7f7f7f")) for p in group),
        highlighted_pis=tuple(sorted({name for p in group for name in p.pi_names})),
    )


def pi_summary(proposals: Iterable[Proposal], name: str) -> PISummaryViewModel:
    involved = [p for p in proposals if p.has_pi(name)]
    years = sorted(p.year for p in involved)
    collaborators = sorted({n for p in involved for n in p.distinct_pis} - {name})
    return PISummaryViewModel(
        name=name,
        total_proposals=len(involved),
        collaborator_count=len(collaborators),
        active_years=f"{years[0]} - {years[-1]}" if years else "N/A",
        collaborators=tuple(collaborators),
    )


def legend(proposals: Iterable[Proposal]) -> Tuple[LegendEntryViewModel, ...]:
    palette = theme_palette(p.theme for p in proposals)
    return tuple(LegendEntryViewModel(theme, color) for theme, color in sorted(palette.items()))


def placeholder_for(envelope: ViewEnvelope) -> Optional[object]:
    """Loading or empty-state model for a non-renderable envelope."""
    state = envelope.availability
    if state is AvailabilityState.AVAILABLE:
        return None
    if state is AvailabilityState.LOADING:
        return LoadingStateViewModel("Loading dataset...", None, True)
    if state is AvailabilityState.NO_DATA:
        return EmptyStateViewModel("Upload a dataset to begin", ".xlsx or .csv")
    if state is AvailabilityState.EMPTY:
        return EmptyStateViewModel("No valid data found", envelope.message)
    if state is AvailabilityState.FILTERED_OUT:
        return EmptyStateViewModel("No proposals match the current filters", None)
    return EmptyStateViewModel("Failed to load dataset", envelope.message)
