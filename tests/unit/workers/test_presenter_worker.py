# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

"""Unit Tests - Measurement presenter worker."""

import asyncio

import pytest

from bodyrig.schemas.device import START_MEASUREMENT
from bodyrig.workers.measurement.presenter_worker import MeasurementPresenterWorker
from bodyrig.workers.transport_worker import WorkerState
from tests.conftest import DEVICE_ADDRESS, DISCONNECT, FakeTransport, wait_until


@pytest.fixture
async def running(session, channel):
    transport = FakeTransport()
    worker = MeasurementPresenterWorker(DEVICE_ADDRESS, session, transport)
    task = asyncio.create_task(worker.run())
    await wait_until(lambda: channel.connects)
    yield worker, transport, task
    if not task.done():
        transport.inbox.put_nowait(DISCONNECT)
        await asyncio.wait_for(task, timeout=2.0)


class TestMeasurementPresenterWorker:
    """Tests for bridging presenter commands and session events."""

    async def test_reports_ready_then_forwards_state(self, running, channel):
        worker, transport, _ = running

        assert transport.outbox[0] == {
            "event": "status",
            "state": "running",
            "address": DEVICE_ADDRESS,
            "message": "Session ready",
        }
        assert worker.state == WorkerState.RUNNING

        channel.open()
        await wait_until(lambda: any(e["data"]["connectionState"] == "connected" for e in transport.events("state")))

    async def test_commands_drive_session(self, running, channel):
        _, transport, _ = running
        channel.open()

        transport.inbox.put_nowait({"command": "start_measurement"})
        await wait_until(lambda: START_MEASUREMENT in channel.sent)

        transport.inbox.put_nowait({"command": "select_step", "step": 2})
        await wait_until(lambda: transport.events("step_unavailable"))
        assert "2" not in channel.sent

    async def test_rejected_commands_report_errors(self, running):
        _, transport, _ = running

        transport.inbox.put_nowait({"command": "warp"})
        transport.inbox.put_nowait({"command": "start_measurement"})
        await wait_until(lambda: len(transport.events("error")) == 2)

        codes = [e["data"]["error_code"] for e in transport.events("error")]
        assert codes == ["unknown_command", "channel_not_ready"]

    async def test_disconnect_stops_worker(self, running, session):
        worker, transport, task = running

        transport.inbox.put_nowait(DISCONNECT)
        await asyncio.wait_for(task, timeout=2.0)

        assert worker.state == WorkerState.STOPPED
        assert transport.closed
        sent = len(transport.outbox)
        session.disconnect()
        await asyncio.sleep(0.05)
        assert len(transport.outbox) == sent
