"""
Tests for multi-step enrollment.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import numpy as np
import pytest

from faceauth.clients.memory_store import create_memory_database
from faceauth.services.descriptor_service import (
    DescriptorTooShortError,
    DescriptorValidator,
    NonNumericDescriptorError,
)
from faceauth.services.enrollment_service import (
    EnrollmentCoordinator,
    EnrollmentSessionError,
    EnrollmentStepOutOfOrderError,
    InvalidEnrollmentSessionError,
    InvalidProgressError,
    NoActiveEnrollmentSessionError,
)
from faceauth.services.errors import InternalServiceError
from faceauth.services.session_service import SessionManager

from conftest import FakeClock, jitter


class TestEnrollmentCoordinator:
    """Test cases for EnrollmentCoordinator."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def db(self):
        return create_memory_database()

    @pytest.fixture
    def sessions(self, db, clock):
        return SessionManager(db.sessions, ttl=timedelta(hours=24), clock=clock)

    @pytest.fixture
    def coordinator(self, db, sessions):
        return EnrollmentCoordinator(db.identities, sessions, DescriptorValidator(128), total_steps=5)

    @pytest.fixture
    def strict_coordinator(self, db, sessions):
        return EnrollmentCoordinator(
            db.identities, sessions, DescriptorValidator(128), total_steps=5, enforce_order=True
        )

    @pytest.fixture
    def captures(self, rng, base_descriptor):
        return [jitter(base_descriptor, rng) for _ in range(6)]

    @pytest.mark.asyncio
    async def test_first_step_creates_identity_and_session(self, coordinator, db, captures):
        result = await coordinator.submit(1, captures[0])

        identities = await db.identities.list_all()
        assert len(identities) == 1
        assert identities[0].id == result.identity_id
        assert len(identities[0].descriptors) == 1
        np.testing.assert_allclose(identities[0].descriptors[0], captures[0])

        session = await db.sessions.get(result.session_id)
        assert session.identity_id == result.identity_id
        assert result.completed is False
        assert result.progress == 1

    @pytest.mark.asyncio
    async def test_new_identity_gets_default_profile(self, coordinator, db, captures):
        result = await coordinator.submit(1, captures[0])

        identity = await db.identities.get(result.identity_id)
        assert identity.display_name == f"User {result.identity_id[:8]}"
        assert identity.email == ""

    @pytest.mark.asyncio
    async def test_full_enrollment_completes_with_five_descriptors(self, coordinator, db, captures):
        first = await coordinator.submit(1, captures[0])

        results = [first]
        for step in range(2, 6):
            results.append(await coordinator.submit(step, captures[step - 1], session_id=first.session_id))

        assert [r.completed for r in results] == [False, False, False, False, True]
        assert all(r.identity_id == first.identity_id for r in results)
        assert all(r.session_id == first.session_id for r in results)

        identity = await db.identities.get(first.identity_id)
        assert len(identity.descriptors) == 5
        # Enrollment order is preserved
        for stored, sent in zip(identity.descriptors, captures[:5]):
            np.testing.assert_allclose(stored, sent)

    @pytest.mark.asyncio
    async def test_later_step_without_session_fails_without_mutation(self, coordinator, db, captures):
        first = await coordinator.submit(1, captures[0])

        with pytest.raises(NoActiveEnrollmentSessionError):
            await coordinator.submit(2, captures[1])

        identities = await db.identities.list_all()
        assert len(identities) == 1
        assert len(identities[0].descriptors) == 1
        assert identities[0].id == first.identity_id

    @pytest.mark.asyncio
    async def test_later_step_with_unknown_session(self, coordinator, db, captures):
        await coordinator.submit(1, captures[0])

        with pytest.raises(InvalidEnrollmentSessionError):
            await coordinator.submit(3, captures[1], session_id="not-a-session")

        assert len((await db.identities.list_all())[0].descriptors) == 1

    @pytest.mark.asyncio
    async def test_later_step_with_expired_session(self, coordinator, db, clock, captures):
        first = await coordinator.submit(1, captures[0])
        clock.advance(hours=25)

        with pytest.raises(InvalidEnrollmentSessionError):
            await coordinator.submit(2, captures[1], session_id=first.session_id)

        assert len((await db.identities.get(first.identity_id)).descriptors) == 1

    @pytest.mark.asyncio
    async def test_session_errors_are_authentication_errors(self, coordinator, captures):
        with pytest.raises(EnrollmentSessionError):
            await coordinator.submit(2, captures[1])

    @pytest.mark.asyncio
    async def test_identity_deleted_mid_enrollment(self, coordinator, db, captures):
        first = await coordinator.submit(1, captures[0])
        await db.identities.delete(first.identity_id)

        with pytest.raises(InvalidEnrollmentSessionError):
            await coordinator.submit(2, captures[1], session_id=first.session_id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("progress", [0, 6, -1, "2", 2.0, None, True])
    async def test_invalid_progress_rejected_before_any_change(self, coordinator, db, captures, progress):
        with pytest.raises(InvalidProgressError):
            await coordinator.submit(progress, captures[0])

        assert await db.identities.list_all() == []

    @pytest.mark.asyncio
    async def test_invalid_descriptor_on_first_step_creates_nothing(self, coordinator, db):
        with pytest.raises(DescriptorTooShortError):
            await coordinator.submit(1, [0.1] * 64)

        assert await db.identities.list_all() == []
        assert db.sessions.client.sessions == {}

    @pytest.mark.asyncio
    async def test_invalid_descriptor_on_later_step_appends_nothing(self, coordinator, db, captures):
        first = await coordinator.submit(1, captures[0])
        bad = list(captures[1])
        bad[10] = float("inf")

        with pytest.raises(NonNumericDescriptorError):
            await coordinator.submit(2, bad, session_id=first.session_id)

        assert len((await db.identities.get(first.identity_id)).descriptors) == 1

    @pytest.mark.asyncio
    async def test_repeated_step_appends_twice(self, coordinator, db, captures):
        """Without strict ordering duplicate submissions are tolerated."""
        first = await coordinator.submit(1, captures[0])

        await coordinator.submit(2, captures[1], session_id=first.session_id)
        await coordinator.submit(2, captures[1], session_id=first.session_id)

        assert len((await db.identities.get(first.identity_id)).descriptors) == 3

    @pytest.mark.asyncio
    async def test_first_step_ignores_existing_session(self, coordinator, db, captures):
        first = await coordinator.submit(1, captures[0])
        second = await coordinator.submit(1, captures[1], session_id=first.session_id)

        assert second.identity_id != first.identity_id
        assert second.session_id != first.session_id
        assert len(await db.identities.list_all()) == 2

    @pytest.mark.asyncio
    async def test_single_step_enrollment_completes_immediately(self, db, sessions, captures):
        coordinator = EnrollmentCoordinator(db.identities, sessions, DescriptorValidator(128), total_steps=1)

        result = await coordinator.submit(1, captures[0])

        assert result.completed is True

    @pytest.mark.asyncio
    async def test_failed_session_creation_rolls_back_identity(self, coordinator, db, captures):
        coordinator.sessions.create = AsyncMock(side_effect=RuntimeError("session store down"))

        with pytest.raises(InternalServiceError, match="Enrollment failed"):
            await coordinator.submit(1, captures[0])

        assert await db.identities.list_all() == []

    @pytest.mark.asyncio
    async def test_store_failure_on_append_is_internal_error(self, coordinator, db, captures):
        first = await coordinator.submit(1, captures[0])
        db.identities.append_descriptor = AsyncMock(side_effect=RuntimeError("timeout"))

        with pytest.raises(InternalServiceError) as exc_info:
            await coordinator.submit(2, captures[1], session_id=first.session_id)

        assert "timeout" not in exc_info.value.message

    @pytest.mark.asyncio
    async def test_strict_in_order_steps_succeed(self, strict_coordinator, db, captures):
        first = await strict_coordinator.submit(1, captures[0])
        for step in range(2, 6):
            result = await strict_coordinator.submit(step, captures[step - 1], session_id=first.session_id)

        assert result.completed is True
        assert len((await db.identities.get(first.identity_id)).descriptors) == 5

    @pytest.mark.asyncio
    async def test_strict_replayed_step_rejected(self, strict_coordinator, db, captures):
        first = await strict_coordinator.submit(1, captures[0])
        await strict_coordinator.submit(2, captures[1], session_id=first.session_id)

        with pytest.raises(EnrollmentStepOutOfOrderError):
            await strict_coordinator.submit(2, captures[1], session_id=first.session_id)

        assert len((await db.identities.get(first.identity_id)).descriptors) == 2

    @pytest.mark.asyncio
    async def test_strict_skipped_step_rejected(self, strict_coordinator, db, captures):
        first = await strict_coordinator.submit(1, captures[0])

        with pytest.raises(EnrollmentStepOutOfOrderError):
            await strict_coordinator.submit(3, captures[2], session_id=first.session_id)

        assert len((await db.identities.get(first.identity_id)).descriptors) == 1

    @pytest.mark.asyncio
    async def test_strict_failed_append_rolls_back_step(self, strict_coordinator, db, captures):
        first = await strict_coordinator.submit(1, captures[0])
        original_append = db.identities.append_descriptor
        db.identities.append_descriptor = AsyncMock(side_effect=RuntimeError("timeout"))

        with pytest.raises(InternalServiceError):
            await strict_coordinator.submit(2, captures[1], session_id=first.session_id)

        db.identities.append_descriptor = original_append
        result = await strict_coordinator.submit(2, captures[1], session_id=first.session_id)
        assert result.progress == 2

    @pytest.mark.asyncio
    async def test_strict_missing_identity_rolls_back_step(self, strict_coordinator, db, captures):
        first = await strict_coordinator.submit(1, captures[0])
        await db.identities.delete(first.identity_id)

        with pytest.raises(InvalidEnrollmentSessionError):
            await strict_coordinator.submit(2, captures[1], session_id=first.session_id)

        assert (await db.sessions.get(first.session_id)).enrollment_step == 1

    @pytest.mark.asyncio
    async def test_failed_identity_cleanup_keeps_session_error(self, coordinator, db, captures):
        session_error = RuntimeError("session store down")
        coordinator.sessions.create = AsyncMock(side_effect=session_error)
        db.identities.delete = AsyncMock(side_effect=RuntimeError("identity store down"))

        with pytest.raises(InternalServiceError) as exc_info:
            await coordinator.submit(1, captures[0])

        assert exc_info.value.__cause__ is session_error
        db.identities.delete.assert_awaited_once()
