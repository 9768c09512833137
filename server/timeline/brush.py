"""
Two-handle range brush over a timeline.

The brush narrows the visible window without touching the dataset. Input is
modelled as an explicit capture state machine:

    Idle --pointer_down(START)--> DraggingStart --pointer_up/leave--> Idle
    Idle --pointer_down(END)----> DraggingEnd   --pointer_up/leave--> Idle

pointer_move only has an effect while dragging.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .models import DateRange, Edge

logger = logging.getLogger(__name__)


def update_selection(current: DateRange, edge: Edge, proposed: datetime, bounds: DateRange) -> DateRange:
    """
    Move one edge of `current` to `proposed`, clamped to `bounds`.

    The start must stay strictly before the end and vice versa; a move that
    would cross or touch the other handle is rejected and `current` comes
    back unchanged.
    """
    instant = bounds.clamp(proposed)

    if Edge(edge) is Edge.START:
        if instant < current.end:
            return DateRange(instant, current.end)
    elif instant > current.start:
        return DateRange(current.start, instant)

    return current


def instant_at(percent: float, bounds: DateRange) -> datetime:
    """Instant at `percent` (0-100, clamped) of the way through `bounds`."""
    fraction = min(max(percent, 0.0), 100.0) / 100
    return bounds.start + (bounds.end - bounds.start) * fraction


@dataclass(frozen=True)
class SliderPosition:
    """
    Handle offsets in percent of the absolute range.

    `start_percent` is measured from the left edge, `end_percent` from the
    right edge, which is how the two handles are positioned when drawn.
    """
    start_percent: float
    end_percent: float


def slider_position(selected: DateRange, bounds: DateRange) -> SliderPosition:
    span = (bounds.end - bounds.start).total_seconds()
    if span <= 0:
        return SliderPosition(0.0, 0.0)

    left = (selected.start - bounds.start).total_seconds() / span * 100
    right = (bounds.end - selected.end).total_seconds() / span * 100
    return SliderPosition(start_percent=left, end_percent=right)


class BrushState(str, Enum):
    IDLE = "idle"
    DRAGGING_START = "dragging_start"
    DRAGGING_END = "dragging_end"


_DRAG_STATES = {
    Edge.START: BrushState.DRAGGING_START,
    Edge.END: BrushState.DRAGGING_END,
}


class BrushController:
    """Owns the selected range of one timeline view."""

    def __init__(self, bounds: DateRange, selection: DateRange | None = None):
        self._bounds = bounds
        self._state = BrushState.IDLE
        self._selection = self._fit(selection) if selection is not None else bounds

    def _fit(self, selection: DateRange) -> DateRange:
        start = self._bounds.clamp(selection.start)
        end = self._bounds.clamp(selection.end)
        # handles must stay strictly ordered unless the dataset is a single instant
        if start >= end and self._bounds.start < self._bounds.end:
            return self._bounds
        return DateRange(start, end)

    @property
    def bounds(self) -> DateRange:
        return self._bounds

    @property
    def selection(self) -> DateRange:
        return self._selection

    @property
    def state(self) -> BrushState:
        return self._state

    @property
    def position(self) -> SliderPosition:
        return slider_position(self._selection, self._bounds)

    def pointer_down(self, edge: Edge) -> BrushState:
        if self._state is BrushState.IDLE:
            self._state = _DRAG_STATES[Edge(edge)]
        return self._state

    def pointer_move(self, instant: datetime | None = None, percent: float | None = None) -> DateRange:
        """Drag the captured handle to `instant`, or to `percent` of the bounds."""
        if self._state is BrushState.IDLE:
            return self._selection

        if instant is None:
            if percent is None:
                raise ValueError("pointer_move needs an instant or a percent")
            instant = instant_at(percent, self._bounds)

        edge = Edge.START if self._state is BrushState.DRAGGING_START else Edge.END
        updated = update_selection(self._selection, edge, instant, self._bounds)
        if updated is self._selection:
            logger.debug(f"Rejected {edge.value} handle move to {instant.isoformat()}")
        self._selection = updated
        return updated

    def pointer_up(self) -> BrushState:
        self._state = BrushState.IDLE
        return self._state

    pointer_leave = pointer_up

    def reset(self) -> DateRange:
        """Select the whole dataset again and drop any capture."""
        self._state = BrushState.IDLE
        self._selection = self._bounds
        return self._selection
