"""
Tests for the session lifecycle.
"""

import asyncio
from datetime import timedelta

import pytest

from faceauth.clients.memory_store import create_memory_database
from faceauth.services.session_service import SessionManager, SessionSweeper

from conftest import FakeClock


class TestSessionManager:
    """Test cases for SessionManager."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def db(self):
        return create_memory_database()

    @pytest.fixture
    def manager(self, db, clock):
        return SessionManager(db.sessions, ttl=timedelta(hours=24), clock=clock)

    @pytest.mark.asyncio
    async def test_create_stores_session_with_fixed_expiry(self, manager, db, clock):
        session_id = await manager.create("identity-1")

        stored = await db.sessions.get(session_id)
        assert stored.identity_id == "identity-1"
        assert stored.expires_at == clock.now + timedelta(hours=24)
        assert len(session_id) == 32

    @pytest.mark.asyncio
    async def test_tokens_are_unique(self, manager):
        tokens = {await manager.create("identity-1") for _ in range(50)}
        assert len(tokens) == 50

    @pytest.mark.asyncio
    async def test_resolve_live_session(self, manager, clock):
        session_id = await manager.create("identity-1")
        clock.advance(hours=23, minutes=59)

        session = await manager.resolve(session_id)

        assert session is not None
        assert session.identity_id == "identity-1"

    @pytest.mark.asyncio
    async def test_resolve_does_not_renew_expiry(self, manager, clock):
        session_id = await manager.create("identity-1")
        original = (await manager.resolve(session_id)).expires_at

        clock.advance(hours=12)
        assert (await manager.resolve(session_id)).expires_at == original

        clock.advance(hours=12, milliseconds=1)
        assert await manager.resolve(session_id) is None

    @pytest.mark.asyncio
    async def test_expired_one_millisecond_ago_is_removed_on_read(self, manager, db, clock):
        session_id = await manager.create("identity-1")
        clock.advance(hours=24, milliseconds=1)

        assert await manager.resolve(session_id) is None
        # Record is gone from the store itself
        assert await db.sessions.get(session_id) is None
        assert await manager.resolve(session_id) is None

    @pytest.mark.asyncio
    async def test_session_exactly_at_expiry_is_live(self, manager, clock):
        session_id = await manager.create("identity-1")
        clock.advance(hours=24)

        assert await manager.resolve(session_id) is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, "", "unknown-token"])
    async def test_resolve_missing(self, manager, token):
        assert await manager.resolve(token) is None

    @pytest.mark.asyncio
    async def test_revoke_is_idempotent(self, manager, db):
        session_id = await manager.create("identity-1")

        await manager.revoke(session_id)
        await manager.revoke(session_id)
        await manager.revoke(None)

        assert await db.sessions.get(session_id) is None
        assert await manager.resolve(session_id) is None

    @pytest.mark.asyncio
    async def test_sweep_removes_only_expired(self, manager, db, clock):
        old = await manager.create("identity-1")
        clock.advance(hours=20)
        fresh = await manager.create("identity-2")
        clock.advance(hours=5)

        removed = await manager.sweep_expired()

        assert removed == 1
        assert await db.sessions.get(old) is None
        assert await db.sessions.get(fresh) is not None

    @pytest.mark.asyncio
    async def test_advance_enrollment_step_is_compare_and_set(self, manager):
        session_id = await manager.create("identity-1", enrollment_step=1)

        assert await manager.advance_enrollment_step(session_id, 1, 2)
        assert not await manager.advance_enrollment_step(session_id, 1, 2)
        assert (await manager.resolve(session_id)).enrollment_step == 2


class TestSessionSweeper:
    """Test cases for the background session sweeper."""

    @pytest.mark.asyncio
    async def test_sweeper_removes_expired_sessions_until_stopped(self):
        clock = FakeClock()
        db = create_memory_database()
        manager = SessionManager(db.sessions, ttl=timedelta(minutes=1), clock=clock)
        session_id = await manager.create("identity-1")
        clock.advance(minutes=2)

        sweeper = SessionSweeper(manager, interval_seconds=0.01)
        sweeper.start()
        assert sweeper.is_running

        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert not sweeper.is_running
        assert await db.sessions.get(session_id) is None

    @pytest.mark.asyncio
    async def test_sweeper_survives_store_errors(self):
        manager = SessionManager(create_memory_database().sessions)
        calls = []

        async def flaky_sweep():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("store down")
            return 0

        manager.sweep_expired = flaky_sweep

        sweeper = SessionSweeper(manager, interval_seconds=0.005)
        sweeper.start()
        await asyncio.sleep(0.05)

        assert sweeper.is_running
        await sweeper.stop()
        assert len(calls) >= 2

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        sweeper = SessionSweeper(SessionManager(create_memory_database().sessions), interval_seconds=1)
        await sweeper.stop()
        assert not sweeper.is_running
