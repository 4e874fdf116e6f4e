"""
Presentation Tests
==================

Tooltips, PI summaries, legend, formatting and envelope placeholders.
"""

from datetime import datetime

import pytest

from backend.contracts.base import Error, ErrorCode
from backend.contracts.commands import DatasetLoaded, FilterChanged
from backend.engine import TimeArcEngine, recompute
from frontend.presentation.viewmodels import (
    EmptyStateViewModel, LoadingStateViewModel,
    format_currency, format_date, legend, pi_summary, placeholder_for,
    proposal_card, proposal_tooltip, same_date_group,
)
from frontend.state import AvailabilityState, envelope_for
from frontend.visualization.timeline import CATEGORY10
from ingestion.contracts import LoadResult, LoadStatus
from tests.fixtures import make_proposal, make_row, SAMPLE_ROWS


DAY = datetime(2021, 8, 27)


@pytest.fixture
def same_day():
    return [
        make_proposal("PA", ["A", "B"], date=DAY),
        make_proposal("PB", ["B", "C"], date=DAY, theme="Oceans"),
        make_proposal("PC", ["D"], date=DAY),
        make_proposal("PD", ["A"], date=datetime(2021, 9, 1)),
    ]


class TestFormatting:

    @pytest.mark.parametrize("value,expected", [
        (1234.5, "$1,234.50"),
        (0, "-"),
        (0.0, "-"),
        (-5, "-$5.00"),
        (1000000, "$1,000,000.00"),
    ])
    def test_currency(self, value, expected):
        assert format_currency(value) == expected

    def test_dated(self):
        assert format_date(make_proposal("P1", ["A"], date=DAY)) == "August 27, 2021"

    def test_undated_uses_label(self):
        assert format_date(make_proposal("P1", ["A"], year=2019)) == "2019"


class TestTooltip:

    def test_same_day_group_needs_a_shared_pi(self, same_day):
        group = same_date_group(same_day, same_day[0])
        assert [p.proposal_id for p in group] == ["PA", "PB"]
        assert same_date_group(same_day, same_day[2]) == [same_day[2]]

    def test_undated_proposals_group_by_label(self):
        proposals = [
            make_proposal("U1", ["A"], year=2019),
            make_proposal("U2", ["A", "B"], year=2019),
            make_proposal("D1", ["A"], date=datetime(2019, 1, 1)),
        ]
        assert [p.proposal_id for p in same_date_group(proposals, proposals[0])] == ["U1", "U2"]

    def test_multi_proposal_tooltip(self, same_day):
        tooltip = proposal_tooltip(same_day, same_day[0])
        assert tooltip.header == "2 Proposals on August 27, 2021"
        assert [c.proposal_id for c in tooltip.cards] == ["PA", "PB"]
        assert tooltip.highlighted_pis == ("A", "B", "C")
        # themes: Energy, Oceans
        assert tooltip.cards[1].theme_color == CATEGORY10[1]

    def test_single_proposal_tooltip_has_no_header(self, same_day):
        tooltip = proposal_tooltip(same_day, same_day[3])
        assert tooltip.header is None
        assert len(tooltip.cards) == 1

    def test_card_pi_rows(self):
        rows = [
            make_row("P1", "2021-08-27", "A", credit="0.5", first="1200", total="2500.5"),
            make_row("P1", "2021-08-27", "B", credit="0.5"),
        ]
        proposal = recompute(rows).proposals[0]
        card = proposal_card(proposal, "#abc")
        assert card.date_label == "August 27, 2021"
        assert card.sponsor == "NSF"
        assert [(r.name, r.credit, r.first, r.total) for r in card.pis] == [
            ("A", "0.5", "$1,200.00", "$2,500.50"),
            ("B", "0.5", "-", "-"),
        ]


class TestPISummary:

    @pytest.fixture
    def proposals(self):
        return recompute(SAMPLE_ROWS).proposals

    def test_collaborative_pi(self, proposals):
        summary = pi_summary(proposals, "A")
        assert summary.total_proposals == 3
        assert summary.collaborators == ("B", "C")
        assert summary.collaborator_count == 2
        assert summary.active_years == "2019 - 2021"

    def test_isolated_pi(self, proposals):
        summary = pi_summary(proposals, "E")
        assert summary.total_proposals == 1
        assert summary.collaborator_count == 0
        assert summary.active_years == "2022 - 2022"

    def test_unknown_pi(self, proposals):
        summary = pi_summary(proposals, "Nobody")
        assert summary.total_proposals == 0
        assert summary.active_years == "N/A"


class TestLegend:

    def test_sorted_themes(self):
        entries = legend(recompute(SAMPLE_ROWS).proposals)
        assert [(e.theme, e.color) for e in entries] == [
            ("Agriculture", CATEGORY10[0]),
            ("Energy", CATEGORY10[1]),
            ("Oceans", CATEGORY10[2]),
        ]


class TestEnvelope:

    def test_no_data(self):
        envelope = envelope_for(TimeArcEngine().snapshot())
        assert envelope.availability is AvailabilityState.NO_DATA
        placeholder = placeholder_for(envelope)
        assert isinstance(placeholder, EmptyStateViewModel)
        assert placeholder.title == "Upload a dataset to begin"

    def test_loading(self):
        envelope = envelope_for(TimeArcEngine().snapshot(), loading=True)
        assert isinstance(placeholder_for(envelope), LoadingStateViewModel)

    def test_available_with_warning(self):
        engine = TimeArcEngine()
        engine.dispatch(DatasetLoaded(rows=SAMPLE_ROWS + (make_row("P9", "pending", "Z"),)))
        envelope = envelope_for(engine.snapshot(), data={"ok": True})
        assert envelope.is_renderable
        assert envelope.data == {"ok": True}
        assert envelope.warnings == ("1 rows skipped during normalization",)
        assert placeholder_for(envelope) is None

    def test_empty_dataset(self):
        engine = TimeArcEngine()
        snapshot = engine.dispatch(DatasetLoaded(rows=(make_row("P1", "pending", "A"),)))
        envelope = envelope_for(snapshot, data={"ignored": True})
        assert envelope.availability is AvailabilityState.EMPTY
        assert envelope.data is None
        assert placeholder_for(envelope).title == "No valid data found"

    def test_filtered_out(self):
        engine = TimeArcEngine()
        engine.dispatch(DatasetLoaded(rows=SAMPLE_ROWS))
        snapshot = engine.dispatch(FilterChanged(pi_name="E", pi_count=2))
        envelope = envelope_for(snapshot)
        assert envelope.availability is AvailabilityState.FILTERED_OUT
        assert not envelope.is_renderable

    def test_failed_load(self):
        engine = TimeArcEngine()
        generation = engine.begin_load()
        engine.complete_load(generation, LoadResult(
            source="x.csv",
            status=LoadStatus.PARSE_ERROR,
            error=Error.create(ErrorCode.LOAD_FAILURE, "bad file"),
        ))
        envelope = envelope_for(engine.snapshot())
        assert envelope.availability is AvailabilityState.FAILED
        assert envelope.message == "bad file"
        assert placeholder_for(envelope).detail == "bad file"

    def test_failed_reload_keeps_previous_view(self):
        engine = TimeArcEngine()
        engine.dispatch(DatasetLoaded(rows=SAMPLE_ROWS))
        generation = engine.begin_load()
        engine.complete_load(generation, LoadResult(
            source="x.csv",
            status=LoadStatus.HTTP_ERROR,
            error=Error.create(ErrorCode.LOAD_FAILURE, "HTTP 500"),
        ))
        envelope = envelope_for(engine.snapshot(), data={"ok": True})
        assert envelope.availability is AvailabilityState.AVAILABLE
        assert envelope.is_renderable
        assert envelope.message is None
        assert envelope.warnings == ("Reload failed, showing previous data: HTTP 500",)

        envelope = envelope_for(engine.dispatch(FilterChanged(pi_name="A")), data={"ok": True})
        assert envelope.is_renderable
        assert envelope.warnings == ()
