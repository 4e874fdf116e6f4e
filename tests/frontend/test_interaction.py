"""
Interaction Tests
=================

Every user action maps to exactly one engine command.
"""

import pytest

from backend.contracts.commands import DatasetLoaded, FilterChanged, ViewportChanged, ViewReset
from backend.core.viewport import ViewportState
from backend.engine import FilterState
from frontend.interaction.temporal import (
    ActionType, InteractionRequest, PICountControlState, ZoomControlState,
    pi_options, to_command,
)
from tests.fixtures import SAMPLE_ROWS


def request(action, **payload):
    return InteractionRequest(action=action, payload=payload)


class TestToCommand:

    def test_load_rows(self):
        command = to_command(request(ActionType.LOAD_ROWS, rows=list(SAMPLE_ROWS), source="upload.xlsx"))
        assert isinstance(command, DatasetLoaded)
        assert command.rows == SAMPLE_ROWS
        assert command.source == "upload.xlsx"
        assert command.generation is None

    def test_select_pi_keeps_count(self):
        command = to_command(request(ActionType.SELECT_PI, pi_name="A"), FilterState(pi_count=2))
        assert command == FilterChanged(pi_name="A", pi_count=2)

    def test_select_all(self):
        command = to_command(request(ActionType.SELECT_PI, pi_name="all"), FilterState(pi_name="A"))
        assert command == FilterChanged(pi_name=None, pi_count=None)

    def test_pi_count_keeps_selection(self):
        command = to_command(request(ActionType.SET_PI_COUNT, pi_count=3), FilterState(pi_name="A"))
        assert command == FilterChanged(pi_name="A", pi_count=3)

    def test_pi_count_zero_means_all(self):
        command = to_command(request(ActionType.SET_PI_COUNT, pi_count=0), FilterState(pi_count=3))
        assert command.pi_count is None

    @pytest.mark.parametrize("action,payload,expected", [
        (ActionType.SET_ZOOM, {"zoom": "2.5"}, ViewportChanged(zoom=2.5)),
        (ActionType.DRAG_PAN, {"dx": -40}, ViewportChanged(pan_by=-40.0)),
        (ActionType.RESIZE, {"pixel_width": 800}, ViewportChanged(pixel_width=800.0)),
        (ActionType.RESET_ZOOM, {}, ViewReset(reset_filter=False, reset_viewport=True)),
        (ActionType.RESET_ALL, {}, ViewReset(reset_filter=True, reset_viewport=True)),
    ])
    def test_viewport_actions(self, action, payload, expected):
        assert to_command(InteractionRequest(action=action, payload=payload)) == expected


class TestControls:

    def test_zoom_control(self):
        control = ZoomControlState.of(ViewportState(zoom=2.5))
        assert control.label == "2.5x"
        assert control.can_zoom_in
        assert control.can_zoom_out

    def test_zoom_control_at_limits(self):
        assert not ZoomControlState.of(ViewportState(zoom=10.0)).can_zoom_in
        assert not ZoomControlState.of(ViewportState(zoom=0.5)).can_zoom_out
        assert ZoomControlState.of(ViewportState()).label == "1.0x"

    def test_pi_count_control(self):
        counts = {1: 1, 2: 3, 3: 1}
        assert PICountControlState.of(FilterState(), 3, counts).label == "All"
        control = PICountControlState.of(FilterState(pi_count=2), 3, counts)
        assert (control.value, control.maximum, control.label) == (2, 3, "2 PI (3)")

    def test_pi_options(self):
        assert pi_options(("A", "B")) == (("all", "All PIs"), ("A", "A"), ("B", "B"))
