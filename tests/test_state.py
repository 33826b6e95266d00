from __future__ import annotations

from cityscraper.state import CityQueue, RunState
from cityscraper.stats import Stats


def _queue(*localities: str) -> tuple[CityQueue, RunState, Stats]:
    state = RunState.from_localities(localities)
    stats = Stats()
    return CityQueue(state, stats), state, stats


def test_from_localities_sets_front_as_current() -> None:
    queue, state, _ = _queue("Lyon", "", "Paris")

    assert queue.current() == "Lyon"
    assert state.current_locality == "Lyon"
    assert len(queue) == 2
    assert state.running is True


def test_advance_resets_duplicates_and_moves_front() -> None:
    queue, state, stats = _queue("Lyon", "Paris")
    stats.duplicates_this_locality = 42

    assert queue.advance() == "Paris"
    assert state.current_locality == "Paris"
    assert stats.duplicates_this_locality == 0
    assert state.running is True
    assert state.advance_count == 1


def test_advance_to_empty_queue_stops_running() -> None:
    queue, state, _ = _queue("Lyon")

    assert queue.advance() is None
    assert not queue
    assert state.current_locality is None
    assert state.running is False


def test_advance_on_empty_queue_is_harmless() -> None:
    queue, state, stats = _queue()

    assert queue.advance() is None
    assert state.running is False
    assert stats.duplicates_this_locality == 0


def test_as_dict_lists_remaining_localities() -> None:
    queue, state, _ = _queue("Lyon", "Paris")
    queue.advance()

    assert state.as_dict() == {
        "running": True,
        "stop_requested": False,
        "current_locality": "Paris",
        "remaining": ["Paris"],
    }
