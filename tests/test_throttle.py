"""Tests for the leading-edge throttle."""

from datetime import datetime, timedelta, timezone

import pytest

from collab_presence.core.throttle import LeadingEdgeThrottle

_BASE = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _ms(n: int) -> datetime:
    return _BASE + timedelta(milliseconds=n)


class TestLeadingEdgeThrottle:
    def test_first_event_passes(self) -> None:
        throttle = LeadingEdgeThrottle()
        assert throttle.try_acquire(_BASE)
        assert throttle.last_accepted == _BASE

    def test_burst_inside_window_dropped(self) -> None:
        throttle = LeadingEdgeThrottle()
        accepted = [throttle.try_acquire(_ms(t)) for t in (0, 50, 120, 300, 499)]
        assert accepted == [True, False, False, False, False]
        assert throttle.last_accepted == _BASE

    def test_window_measured_from_last_accepted(self) -> None:
        throttle = LeadingEdgeThrottle()
        assert throttle.try_acquire(_ms(0))
        assert not throttle.try_acquire(_ms(400))
        assert throttle.try_acquire(_ms(500))
        assert not throttle.try_acquire(_ms(900))
        assert throttle.try_acquire(_ms(1000))

    def test_instances_do_not_share_state(self) -> None:
        a, b = LeadingEdgeThrottle(), LeadingEdgeThrottle()
        assert a.try_acquire(_BASE)
        assert b.try_acquire(_BASE)

    def test_reset(self) -> None:
        throttle = LeadingEdgeThrottle()
        throttle.try_acquire(_BASE)
        throttle.reset()
        assert throttle.try_acquire(_ms(1))

    def test_negative_interval_rejected(self) -> None:
        with pytest.raises(ValueError):
            LeadingEdgeThrottle(timedelta(milliseconds=-1))
