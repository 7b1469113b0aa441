# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

"""Unit Tests - Session registry."""

import pytest

from bodyrig.exceptions import SessionInUseError, SessionLimitReachedError, SessionNotFoundError
from bodyrig.session.manager import MeasurementSession
from bodyrig.workers.session_registry import SessionRegistry
from tests.conftest import CLIENT_ID, FakeChannel, ManualAlarmScheduler, RecordingPersistence


@pytest.fixture
def registry():
    def factory() -> MeasurementSession:
        return MeasurementSession(
            FakeChannel(), RecordingPersistence(), CLIENT_ID, alarm_scheduler=ManualAlarmScheduler()
        )

    return SessionRegistry(factory, max_sessions=2)


class TestSessionRegistry:
    """Tests for session ownership per device address."""

    async def test_acquire_and_get(self, registry):
        session = await registry.acquire("192.168.0.140")
        assert registry.get("192.168.0.140") is session
        assert registry.list_all() == [session]

    async def test_single_owner_per_address(self, registry):
        await registry.acquire("192.168.0.140")
        with pytest.raises(SessionInUseError):
            await registry.acquire("192.168.0.140")

    async def test_session_limit(self, registry):
        await registry.acquire("192.168.0.140")
        await registry.acquire("192.168.0.141")
        with pytest.raises(SessionLimitReachedError):
            await registry.acquire("192.168.0.142")

    async def test_release_closes_session(self, registry):
        session = await registry.acquire("192.168.0.140")

        await registry.release("192.168.0.140")

        assert session.is_closed
        with pytest.raises(SessionNotFoundError):
            registry.get("192.168.0.140")
        assert await registry.acquire("192.168.0.140") is not session

    async def test_release_unknown_address_is_noop(self, registry):
        await registry.release("10.0.0.1")

    async def test_status_summary(self, registry):
        await registry.acquire("rig.local")

        assert registry.get_status_summary() == {
            "total_sessions": 1,
            "max_sessions": 2,
            "sessions": {"rig.local": {"connection_state": "disconnected", "phase": "idle", "error": None}},
        }

    async def test_shutdown_all(self, registry):
        sessions = [await registry.acquire("192.168.0.140"), await registry.acquire("192.168.0.141")]

        async with registry:
            pass

        assert all(session.is_closed for session in sessions)
        assert registry.list_all() == []
