import pytest

from conftest import utc
from timeline import (
    BrushController,
    BrushState,
    DateRange,
    Edge,
    instant_at,
    slider_position,
    update_selection,
)

BOUNDS = DateRange(utc(2024, 1, 1), utc(2024, 1, 11))


class TestUpdateSelection:
    def test_moves_start(self):
        updated = update_selection(BOUNDS, Edge.START, utc(2024, 1, 3), BOUNDS)
        assert updated == DateRange(utc(2024, 1, 3), utc(2024, 1, 11))

    def test_moves_end(self):
        updated = update_selection(BOUNDS, Edge.END, utc(2024, 1, 8), BOUNDS)
        assert updated == DateRange(utc(2024, 1, 1), utc(2024, 1, 8))

    def test_end_before_start_is_rejected(self):
        current = DateRange(utc(2024, 1, 5), utc(2024, 1, 9))
        assert update_selection(current, Edge.END, utc(2024, 1, 4), BOUNDS) is current

    def test_start_after_end_is_rejected(self):
        current = DateRange(utc(2024, 1, 5), utc(2024, 1, 9))
        assert update_selection(current, Edge.START, utc(2024, 1, 10), BOUNDS) is current

    def test_handles_may_not_touch(self):
        current = DateRange(utc(2024, 1, 5), utc(2024, 1, 9))
        assert update_selection(current, Edge.START, utc(2024, 1, 9), BOUNDS) is current
        assert update_selection(current, Edge.END, utc(2024, 1, 5), BOUNDS) is current

    def test_clamps_to_bounds(self):
        current = DateRange(utc(2024, 1, 5), utc(2024, 1, 9))

        assert update_selection(current, Edge.START, utc(2023, 6, 1), BOUNDS).start == BOUNDS.start
        assert update_selection(current, Edge.END, utc(2025, 6, 1), BOUNDS).end == BOUNDS.end

    def test_accepts_plain_strings_for_edge(self):
        assert update_selection(BOUNDS, "end", utc(2024, 1, 2), BOUNDS).end == utc(2024, 1, 2)


class TestSliderPosition:
    def test_full_selection(self):
        position = slider_position(BOUNDS, BOUNDS)
        assert (position.start_percent, position.end_percent) == (0.0, 0.0)

    def test_offsets_measured_inward(self):
        position = slider_position(DateRange(utc(2024, 1, 2), utc(2024, 1, 6)), BOUNDS)

        assert position.start_percent == pytest.approx(10.0)
        assert position.end_percent == pytest.approx(50.0)

    def test_zero_length_bounds(self):
        point = DateRange.point(utc(2024, 1, 1))
        assert slider_position(point, point).start_percent == 0.0

    def test_instant_at(self):
        assert instant_at(50, BOUNDS) == utc(2024, 1, 6)
        assert instant_at(-20, BOUNDS) == BOUNDS.start
        assert instant_at(140, BOUNDS) == BOUNDS.end


class TestBrushController:
    def test_starts_idle_with_full_selection(self):
        brush = BrushController(BOUNDS)

        assert brush.state is BrushState.IDLE
        assert brush.selection == BOUNDS

    def test_moves_ignored_when_idle(self):
        brush = BrushController(BOUNDS)
        assert brush.pointer_move(utc(2024, 1, 5)) == BOUNDS

    def test_drag_start_handle(self):
        brush = BrushController(BOUNDS)

        assert brush.pointer_down(Edge.START) is BrushState.DRAGGING_START
        brush.pointer_move(utc(2024, 1, 4))
        brush.pointer_move(utc(2024, 1, 5))
        assert brush.pointer_up() is BrushState.IDLE

        assert brush.selection == DateRange(utc(2024, 1, 5), utc(2024, 1, 11))
        # released: further moves do nothing
        brush.pointer_move(utc(2024, 1, 2))
        assert brush.selection.start == utc(2024, 1, 5)

    def test_drag_end_handle_by_percent(self):
        brush = BrushController(BOUNDS)

        brush.pointer_down(Edge.END)
        brush.pointer_move(percent=30)
        brush.pointer_leave()

        assert brush.state is BrushState.IDLE
        assert brush.selection.end == utc(2024, 1, 4)
        assert brush.position.end_percent == pytest.approx(70.0)

    def test_right_handle_past_left_keeps_range(self):
        brush = BrushController(BOUNDS, DateRange(utc(2024, 1, 5), utc(2024, 1, 9)))

        brush.pointer_down(Edge.END)
        brush.pointer_move(utc(2024, 1, 3))

        assert brush.selection == DateRange(utc(2024, 1, 5), utc(2024, 1, 9))
        assert brush.state is BrushState.DRAGGING_END

    def test_second_pointer_down_keeps_capture(self):
        brush = BrushController(BOUNDS)

        brush.pointer_down(Edge.START)
        assert brush.pointer_down(Edge.END) is BrushState.DRAGGING_START

    def test_move_without_position_raises(self):
        brush = BrushController(BOUNDS)
        brush.pointer_down(Edge.START)

        with pytest.raises(ValueError):
            brush.pointer_move()

    def test_reset(self):
        brush = BrushController(BOUNDS, DateRange(utc(2024, 1, 5), utc(2024, 1, 9)))
        brush.pointer_down(Edge.START)

        assert brush.reset() == BOUNDS
        assert brush.state is BrushState.IDLE

    def test_initial_selection_is_clamped(self):
        brush = BrushController(BOUNDS, DateRange(utc(2023, 12, 1), utc(2024, 1, 5)))
        assert brush.selection == DateRange(BOUNDS.start, utc(2024, 1, 5))

    def test_selection_outside_bounds_falls_back_to_bounds(self):
        brush = BrushController(BOUNDS, DateRange(utc(2025, 1, 1), utc(2025, 2, 1)))
        assert brush.selection == BOUNDS
