# tests/unit/capture/test_session.py
"""Tests for SessionManager lazy renewal."""

import re

from crumbline.session import SessionManager, generate_session_id


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestSessionManager:
    def test_session_stable_before_timeout(self) -> None:
        clock = FakeClock()
        manager = SessionManager(timeout_ms=60_000, clock=clock)
        first = manager.current_session()
        clock.now += 59.0
        assert manager.current_session() is first

    def test_session_renewed_after_timeout(self) -> None:
        clock = FakeClock()
        manager = SessionManager(timeout_ms=60_000, clock=clock)
        first = manager.current_session()

        clock.now += 61.0
        renewed = manager.current_session()

        assert renewed.id != first.id
        assert renewed.started_at == clock.now

    def test_exactly_at_timeout_is_not_expired(self) -> None:
        clock = FakeClock()
        manager = SessionManager(timeout_ms=1000, clock=clock)
        clock.now += 1.0
        assert not manager.is_expired()

    def test_session_property_does_not_renew(self) -> None:
        clock = FakeClock()
        manager = SessionManager(timeout_ms=1000, clock=clock)
        first = manager.session
        clock.now += 10.0
        assert manager.session is first
        assert manager.is_expired()

    def test_renewal_measured_from_session_start(self) -> None:
        clock = FakeClock()
        manager = SessionManager(timeout_ms=10_000, clock=clock)
        first = manager.current_session()
        for _ in range(3):
            clock.now += 4.0
            manager.current_session()
        assert manager.current_session().id != first.id


def test_session_ids_are_unique_and_well_formed() -> None:
    ids = {generate_session_id() for _ in range(1000)}
    assert len(ids) == 1000
    assert all(re.fullmatch(r"\d{13,}-[0-9a-f]{12}", session_id) for session_id in ids)
