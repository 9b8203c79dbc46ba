import itertools
import random

import pytest

from marble_royale.services.race.engine import RaceEngine

from conftest import START_MS, max_step


def run_to_completion(engine, limit=1000):
    for _ in range(limit):
        if engine.is_complete:
            return
        engine.tick()
    raise AssertionError('race did not complete')


def test_finish_order_is_permutation_of_participants():
    names = ['Alice', 'Bob', 'Cara', 'Dan']
    engine = RaceEngine(names, START_MS, sampler=random.Random(7).randint)
    run_to_completion(engine)
    assert sorted(engine.finish_order) == sorted(names)
    assert len(engine.finish_order) == len(set(engine.finish_order)) == len(names)
    assert [r['place'] for r in engine.results()] == [1, 2, 3, 4]


def test_zero_participants_complete_without_ticks():
    engine = RaceEngine([], START_MS)
    assert engine.is_complete
    assert engine.finish_order == []
    assert engine.tick() == []
    assert engine.ticks == 0
    assert engine.results() == []


def test_progress_monotonic_and_clamped():
    names = ['a', 'b', 'c']
    engine = RaceEngine(names, START_MS, track_distance=30, sampler=random.Random(3).randint)
    previous = dict(engine.positions)
    while not engine.is_complete:
        engine.tick()
        for name in names:
            assert previous[name] <= engine.positions[name] <= 30
        previous = dict(engine.positions)
    assert all(pos == 30 for pos in engine.positions.values())


def test_same_tick_finishers_ordered_by_participant_list():
    engine = RaceEngine(['Zed', 'Amy', 'Mo'], START_MS, sampler=max_step)
    for _ in range(12):
        assert engine.tick() == []
    assert engine.positions == {'Zed': 96, 'Amy': 96, 'Mo': 96}
    assert engine.tick() == ['Zed', 'Amy', 'Mo']
    assert engine.finish_order == ['Zed', 'Amy', 'Mo']
    assert engine.ticks == 13


def test_finish_order_follows_speed():
    steps = itertools.cycle([2, 8, 5])

    def sampler(low, high):
        assert (low, high) == (2, 8)
        return next(steps)

    engine = RaceEngine(['slow', 'fast', 'mid'], START_MS, sampler=sampler)
    run_to_completion(engine)
    assert engine.finish_order == ['fast', 'mid', 'slow']
    assert engine.positions == {'slow': 100, 'fast': 100, 'mid': 100}


def test_tick_after_completion_is_noop():
    engine = RaceEngine(['solo'], START_MS, sampler=max_step)
    run_to_completion(engine)
    ticks = engine.ticks
    snapshot = engine.progress_snapshot()
    assert engine.tick() == []
    assert engine.ticks == ticks
    assert engine.progress_snapshot() == snapshot


def test_snapshot_is_a_copy():
    engine = RaceEngine(['a'], START_MS, sampler=max_step)
    snap = engine.progress_snapshot()
    snap['positions']['a'] = 99
    snap['finishOrder'].append('a')
    assert engine.positions['a'] == 0
    assert engine.finish_order == []


@pytest.mark.parametrize('advance_range', [(0, 5), (5, 4)])
def test_invalid_advance_range(advance_range):
    with pytest.raises(ValueError):
        RaceEngine(['a'], START_MS, advance_range=advance_range)


def test_duplicate_participants_rejected():
    with pytest.raises(ValueError):
        RaceEngine(['a', 'a'], START_MS)


def test_race_id_carried_on_engine():
    assert RaceEngine(['a'], START_MS, race_id=7).race_id == 7
    assert RaceEngine(['a'], START_MS).race_id is None
