from datetime import time

from legarden.domain.models import Schedule, TimeWindow
from legarden.domain.schedule import active_windows, is_active, next_transition

from helpers import local, make_actor


def test_inside_and_outside_simple_window():
    sched = make_actor("valve-1", ("08:00", "08:30")).schedule
    assert is_active(sched, local(8, 5))
    assert not is_active(sched, local(7, 59))
    assert not is_active(sched, local(9, 0))


def test_window_start_inclusive_end_exclusive():
    sched = make_actor("valve-1", ("08:00", "08:30")).schedule
    assert is_active(sched, local(8, 0))
    assert not is_active(sched, local(8, 30))


def test_midnight_wrap():
    sched = make_actor("light-1", ("22:00", "05:00")).schedule
    assert is_active(sched, local(23, 30))
    assert is_active(sched, local(0, 0))
    assert is_active(sched, local(4, 59))
    assert not is_active(sched, local(5, 0))
    assert not is_active(sched, local(6, 0))
    assert not is_active(sched, local(21, 59))


def test_overlapping_windows_union():
    sched = make_actor("light-1", ("19:00", "23:30"), ("22:00", "05:00")).schedule
    assert is_active(sched, local(22, 30))
    assert len(active_windows(sched, local(22, 30))) == 2
    assert is_active(sched, local(19, 0))
    assert is_active(sched, local(2, 0))
    assert not is_active(sched, local(12, 0))


def test_evaluation_is_pure():
    sched = Schedule(windows=(TimeWindow(time(8, 0), time(8, 30)),))
    results = [is_active(sched, local(8, 10)) for _ in range(3)]
    assert results == [True, True, True]


def test_every_minute_matches_window_membership():
    sched = make_actor("valve-1", ("08:00", "08:30"), ("21:45", "01:15")).schedule
    for minute in range(24 * 60):
        h, m = divmod(minute, 60)
        in_first = 8 * 60 <= minute < 8 * 60 + 30
        in_second = minute >= 21 * 60 + 45 or minute < 60 + 15
        assert is_active(sched, local(h, m)) == (in_first or in_second), f"{h:02d}:{m:02d}"


def test_next_transition_same_day():
    sched = make_actor("valve-1", ("08:00", "08:30")).schedule
    assert next_transition(sched, local(7, 0)) == local(8, 0)
    assert next_transition(sched, local(8, 5)) == local(8, 30)


def test_next_transition_rolls_to_next_day():
    sched = make_actor("valve-1", ("08:00", "08:30")).schedule
    assert next_transition(sched, local(9, 0)) == local(8, 0, day=2)


def test_next_transition_across_midnight_wrap():
    sched = make_actor("light-1", ("22:00", "05:00")).schedule
    assert next_transition(sched, local(23, 30)) == local(5, 0, day=2)


def test_next_transition_skips_overlap_boundaries():
    sched = make_actor("light-1", ("19:00", "23:30"), ("22:00", "05:00")).schedule
    # 22:00 and 23:30 are boundaries but the state stays on until 05:00
    assert next_transition(sched, local(20, 0)) == local(5, 0, day=2)


def test_next_transition_none_when_always_on():
    sched = make_actor("pump", ("00:00", "12:00"), ("12:00", "00:00")).schedule
    assert next_transition(sched, local(10, 0)) is None
