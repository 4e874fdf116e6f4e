"""
Viewport Transform Tests
========================

Visible window, shift clamping, pan settling and tick schedules.
"""

import pytest

from backend.core.viewport import (
    TickGranularity, ViewportConfig, ViewportState, ViewportTransform, YearExtent,
)

PIXEL_WIDTH = 1000.0  # 200 px per year over a 5-year domain


@pytest.fixture
def transform():
    return ViewportTransform()


@pytest.fixture
def extent():
    # full domain [2018, 2023]
    return YearExtent(2019, 2022)


class TestViewportState:

    def test_zoom_is_clamped(self):
        config = ViewportConfig()
        assert ViewportState().with_zoom(20, config).zoom == 10.0
        assert ViewportState().with_zoom(0.1, config).zoom == 0.5

    def test_pan_by_accumulates(self):
        assert ViewportState().pan_by(10).pan_by(-4).pan == 6

    def test_reset(self):
        assert ViewportState.reset() == ViewportState(zoom=1.0, pan=0.0)


class TestYearExtent:

    def test_of_years(self):
        extent = YearExtent.of([2021, 2019, 2020])
        assert extent == YearExtent(2019, 2021)
        assert extent.full_domain == (2018.0, 2022.0)

    def test_of_nothing(self):
        assert YearExtent.of([]) is None


class TestVisibleWindow:

    def test_unzoomed_is_full_domain(self, transform, extent):
        window = transform.visible_window(ViewportState(), extent, PIXEL_WIDTH)
        assert window.as_tuple() == (2018.0, 2023.0)
        assert not window.clamped

    def test_zoomed_out_clamps_to_full_domain(self, transform, extent):
        window = transform.visible_window(ViewportState(zoom=0.5), extent, PIXEL_WIDTH)
        assert window.as_tuple() == (2018.0, 2023.0)
        assert window.clamped

    def test_width_is_full_width_over_k(self, transform, extent):
        window = transform.visible_window(ViewportState(zoom=2), extent, PIXEL_WIDTH)
        assert window.as_tuple() == (2019.25, 2021.75)
        assert window.width == pytest.approx(5 / 2)

    def test_pan_moves_window(self, transform, extent):
        window = transform.visible_window(ViewportState(zoom=2, pan=-200), extent, PIXEL_WIDTH)
        assert window.start == pytest.approx(2020.25)
        assert window.end == pytest.approx(2022.75)
        assert not window.clamped

    def test_overflow_right_shifts_window(self, transform, extent):
        window = transform.visible_window(ViewportState(zoom=2, pan=-10_000), extent, PIXEL_WIDTH)
        assert window.as_tuple() == (2020.5, 2023.0)
        assert window.clamped

    def test_overflow_left_shifts_window(self, transform, extent):
        window = transform.visible_window(ViewportState(zoom=4, pan=10_000), extent, PIXEL_WIDTH)
        assert window.start == 2018.0
        assert window.width == pytest.approx(5 / 4)

    def test_zero_pixel_width_is_rejected(self, transform, extent):
        with pytest.raises(ValueError):
            transform.visible_window(ViewportState(), extent, 0)


class TestSettle:

    def test_settled_pan_reproduces_clamped_window(self, transform, extent):
        state = ViewportState(zoom=2, pan=-10_000)
        settled = transform.settle(state, extent, PIXEL_WIDTH)
        assert settled.pan == pytest.approx(-250)
        assert settled.zoom == 2
        window = transform.visible_window(settled, extent, PIXEL_WIDTH)
        assert window.as_tuple() == pytest.approx((2020.5, 2023.0))

    def test_unzoomed_settles_to_zero_pan(self, transform, extent):
        assert transform.settle(ViewportState(pan=300), extent, PIXEL_WIDTH).pan == 0.0

    def test_in_bounds_pan_is_kept(self, transform, extent):
        state = ViewportState(zoom=2, pan=-200)
        assert transform.settle(state, extent, PIXEL_WIDTH).pan == pytest.approx(-200)


class TestTicks:

    @pytest.mark.parametrize("zoom,expected", [
        (0.5, TickGranularity.YEAR),
        (1.0, TickGranularity.YEAR),
        (1.5, TickGranularity.QUARTER),
        (4.49, TickGranularity.QUARTER),
        (4.5, TickGranularity.MONTH),
        (10.0, TickGranularity.MONTH),
    ])
    def test_granularity_thresholds(self, transform, zoom, expected):
        assert transform.granularity(zoom) is expected

    def test_yearly_ticks_are_plain_years(self, transform, extent):
        window = transform.visible_window(ViewportState(), extent, PIXEL_WIDTH)
        schedule = transform.ticks(window, 1.0)
        assert schedule.granularity is TickGranularity.YEAR
        assert schedule.values == (2018.0, 2019.0, 2020.0, 2021.0, 2022.0, 2023.0)
        assert schedule.labels == ("2018", "2019", "2020", "2021", "2022", "2023")

    def test_quarter_ticks(self, transform, extent):
        window = transform.visible_window(ViewportState(zoom=2), extent, PIXEL_WIDTH)
        schedule = transform.ticks(window, 2)
        assert schedule.labels[0] == "Q2/2019"
        assert schedule.labels[-1] == "Q4/2021"
        assert len(schedule.ticks) == 11

    def test_monthly_ticks(self, transform, extent):
        window = transform.visible_window(ViewportState(zoom=5), extent, PIXEL_WIDTH)
        assert window.as_tuple() == (2020.0, 2021.0)
        schedule = transform.ticks(window, 5)
        assert schedule.granularity is TickGranularity.MONTH
        assert schedule.labels[:3] == ("01/2020", "02/2020", "03/2020")
        assert schedule.labels[-2:] == ("12/2020", "01/2021")
        assert len(schedule.ticks) == 13

    def test_ticks_stay_inside_window(self, transform, extent):
        window = transform.visible_window(ViewportState(zoom=7, pan=-321), extent, PIXEL_WIDTH)
        schedule = transform.ticks(window, 7)
        assert all(window.start <= v <= window.end for v in schedule.values)
