"""
Proposal Contracts

Immutable domain entities produced by the Normalizer and consumed by
every downstream layer (collaboration index, sequencer, layout).

INVARIANTS:
===========
- A Proposal owns >= 1 PIContribution, in row order
- `year` always equals `date.year` when a precise date exists
- 1900 <= year <= 2100 (enforced by the Normalizer's configuration)
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple, FrozenSet


@dataclass(frozen=True)
class PIContribution:
    """One PI's share of a proposal. Owned exclusively by one Proposal."""
    name: str
    credit: float
    first: float
    total: float

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'credit': self.credit,
            'first': self.first,
            'total': self.total,
        }


@dataclass(frozen=True)
class Proposal:
    """
    A funding submission grouping one or more PI contributions.

    `date` is the precise submission date when one could be recovered;
    `date_label` keeps the submitted value as text for display and for
    same-day grouping of undated proposals.
    """
    proposal_id: str
    title: str
    theme: str
    sponsor: str
    year: int
    date: Optional[datetime]
    date_label: str
    contributions: Tuple[PIContribution, ...]

    def __post_init__(self):
        if not self.contributions:
            raise ValueError(f"Proposal {self.proposal_id} has no PI contributions")
        if self.date is not None and self.date.year != self.year:
            raise ValueError(
                f"Proposal {self.proposal_id}: year {self.year} inconsistent with date {self.date.isoformat()}"
            )

    @property
    def pi_names(self) -> Tuple[str, ...]:
        """PI names in contribution order (duplicates preserved)."""
        return tuple(c.name for c in self.contributions)

    @property
    def distinct_pis(self) -> FrozenSet[str]:
        return frozenset(c.name for c in self.contributions)

    @property
    def pi_count(self) -> int:
        return len(self.contributions)

    def has_pi(self, name: str) -> bool:
        return any(c.name == name for c in self.contributions)

    def to_dict(self) -> dict:
        return {
            'proposal_id': self.proposal_id,
            'title': self.title,
            'theme': self.theme,
            'sponsor': self.sponsor,
            'year': self.year,
            'date': self.date.isoformat() if self.date else None,
            'date_label': self.date_label,
            'contributions': [c.to_dict() for c in self.contributions],
        }
