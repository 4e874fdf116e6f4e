"""
Shared builders for TimeArc tests.

Rows mirror the spreadsheet schema; proposals are built directly for
core-layer tests that should not depend on the normalizer.
"""

from datetime import datetime
from typing import Iterable, Optional

from backend.contracts.proposals import PIContribution, Proposal


def make_row(
    proposal_no,
    date_submitted,
    pi: str,
    title: str = "Untitled",
    theme: str = "Energy",
    sponsor: str = "NSF",
    credit="",
    first="",
    total="",
) -> dict:
    return {
        "proposal_no": proposal_no,
        "date_submitted": date_submitted,
        "PI": pi,
        "title": title,
        "theme": theme,
        "sponsor": sponsor,
        "credit": credit,
        "first": first,
        "total": total,
    }


def make_proposal(
    proposal_id: str,
    pis: Iterable[str],
    year: int = 2021,
    date: Optional[datetime] = None,
    theme: str = "Energy",
    title: Optional[str] = None,
) -> Proposal:
    return Proposal(
        proposal_id=proposal_id,
        title=title or f"Proposal {proposal_id}",
        theme=theme,
        sponsor="NSF",
        year=date.year if date else year,
        date=date,
        date_label=date.date().isoformat() if date else str(year),
        contributions=tuple(PIContribution(name, 1.0, 0.0, 0.0) for name in pis),
    )


# A small dataset spanning 2019-2022 with one isolated PI (E)
SAMPLE_ROWS = (
    make_row("P1", "2019-03-15", "A", title="Solar cells", theme="Energy"),
    make_row("P1", "2019-03-15", "B"),
    make_row("P2", "2020-07-02", "A", title="Grid storage", theme="Energy"),
    make_row("P2", "2020-07-02", "B"),
    make_row("P2", "2020-07-02", "C"),
    make_row("P3", "08/27/2021", "C", title="Soil health", theme="Agriculture"),
    make_row("P3", "08/27/2021", "D"),
    make_row("P4", "2022-01-10", "E", title="Coral mapping", theme="Oceans"),
    make_row("P5", "2021-05-01", "A", title="Battery recycling", theme="Energy"),
    make_row("P5", "2021-05-01", "B"),
)
