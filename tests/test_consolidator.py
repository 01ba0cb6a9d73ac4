import datetime as dt

from signal_timing.signals.consolidator import annotate_latest, consolidate
from signal_timing.state import Direction, IndicatorName, SignalEvent


def _event(day, direction, indicator=IndicatorName.RSI, rationale="r"):
    return SignalEvent(
        date=dt.date(2024, 3, day),
        direction=direction,
        rationale=rationale,
        close=100.0 + day,
        indicator=indicator,
    )


BUY, SELL = Direction.BUY, Direction.SELL


def test_empty_input():
    assert consolidate([]) == []


def test_single_event_is_kept():
    event = _event(1, BUY)
    assert consolidate([event]) == [event]


def test_keeps_only_direction_changes():
    events = [_event(1, BUY), _event(2, BUY), _event(3, SELL), _event(4, SELL), _event(5, BUY)]
    timeline = consolidate(events)
    assert [e.date.day for e in timeline] == [1, 3, 5]
    assert [e.direction for e in timeline] == [BUY, SELL, BUY]


def test_unsorted_input_is_ordered_by_date():
    events = [_event(5, SELL), _event(1, BUY), _event(3, SELL)]
    timeline = consolidate(events)
    assert [e.date.day for e in timeline] == [1, 3]


def test_runs_collapse_across_indicators():
    events = [
        _event(2, BUY, IndicatorName.MACD),
        _event(4, SELL, IndicatorName.BOLLINGER_BANDS),
        _event(1, BUY, IndicatorName.RSI),
        _event(6, SELL, IndicatorName.RSI),
    ]
    timeline = consolidate(events)
    assert [(e.date.day, e.indicator) for e in timeline] == [
        (1, IndicatorName.RSI),
        (4, IndicatorName.BOLLINGER_BANDS),
    ]


def test_same_day_ties_keep_input_order():
    first = _event(1, BUY, IndicatorName.MACD)
    second = _event(1, SELL, IndicatorName.RSI)
    assert consolidate([first, second]) == [first, second]


def test_result_alternates_and_is_a_subsequence():
    events = [_event(d, BUY if d % 3 else SELL) for d in range(1, 20)]
    timeline = consolidate(events)
    for prev, curr in zip(timeline, timeline[1:]):
        assert prev.direction != curr.direction
        assert prev.date < curr.date
    assert all(e in events for e in timeline)


def test_consolidate_is_idempotent():
    events = [_event(3, SELL), _event(1, BUY), _event(2, BUY), _event(4, BUY)]
    once = consolidate(events)
    assert consolidate(once) == once


def test_annotate_latest_replaces_last_rationale_only():
    timeline = [_event(1, BUY, rationale="a"), _event(2, SELL, rationale="b")]
    annotated = annotate_latest(timeline, "모델 판단 근거")
    assert annotated[0].rationale == "a"
    assert annotated[1].rationale == "모델 판단 근거"
    assert annotated[1].date == timeline[1].date
    assert timeline[1].rationale == "b"


def test_annotate_latest_on_empty_timeline():
    assert annotate_latest([], "x") == []
