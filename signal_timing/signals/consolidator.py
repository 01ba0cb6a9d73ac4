"""
Signal consolidator: turns the engine's raw, multi-indicator event list
into the timeline shown on the chart.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from signal_timing.state import Direction, SignalEvent


def consolidate(raw_events: Sequence[SignalEvent]) -> List[SignalEvent]:
    """Sort by date and keep only the events where the direction changes.

    Runs of same-direction events collapse to their first event, whichever
    indicator produced them. The result is a subsequence of the input.
    """
    ordered = sorted(raw_events, key=lambda e: e.date)

    timeline: List[SignalEvent] = []
    last_direction: Optional[Direction] = None
    for event in ordered:
        if event.direction != last_direction:
            timeline.append(event)
            last_direction = event.direction
    return timeline


def annotate_latest(timeline: Sequence[SignalEvent], rationale: str) -> List[SignalEvent]:
    """Replace the most recent event's rationale with the model's explanation."""
    annotated = list(timeline)
    if annotated:
        annotated[-1] = annotated[-1].model_copy(update={"rationale": rationale})
    return annotated
