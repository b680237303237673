from datetime import datetime, timedelta, timezone

from jobcard_api.workflow.clock import DeterministicClock, SystemClock

START = datetime(2024, 1, 1, 8, 0, 0, tzinfo=timezone.utc)


def test_now_is_frozen_until_advanced():
    clock = DeterministicClock(START)
    assert clock.now() == clock.now() == START


def test_advance_moves_by_exactly_the_given_amount():
    clock = DeterministicClock(START)

    clock.advance(minutes=30)
    assert clock.now() - START == timedelta(minutes=30)

    clock.advance(hours=2)
    assert clock.now() - START == timedelta(hours=2, minutes=30)

    clock.advance(seconds=15, minutes=1)
    assert clock.now() - START == timedelta(hours=2, minutes=31, seconds=15)


def test_bare_advance_ticks_one_second():
    clock = DeterministicClock(START)
    assert clock.advance() == START + timedelta(seconds=1)


def test_set_time_resets_offset():
    clock = DeterministicClock(START)
    clock.advance(hours=5)
    later = START + timedelta(days=1)
    clock.set_time(later)
    assert clock.now() == later


def test_system_clock_is_timezone_aware():
    assert SystemClock().now().tzinfo is not None
