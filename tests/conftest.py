# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

"""Shared fixtures for all tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any

import pytest
from fastapi.websockets import WebSocketDisconnect

from bodyrig.device.channel import ChannelState, DeviceChannel
from bodyrig.exceptions import ChannelNotReadyError
from bodyrig.schemas.measurement import FinalizedMeasurement
from bodyrig.services.persistence import MeasurementPersistence
from bodyrig.session.manager import MeasurementSession
from bodyrig.workers.transport.worker_transport import WorkerTransport

DEVICE_ADDRESS = "192.168.0.140"
CLIENT_ID = "webapp_4242"
FIXED_NOW = datetime(2025, 6, 1, 14, 3, 22, 123456)


class FakeChannel(DeviceChannel):
    """In-memory device channel. Tests drive the device side explicitly."""

    def __init__(self) -> None:
        super().__init__()
        self._state = ChannelState.IDLE
        self._address: str | None = None
        self.sent: list[str] = []
        self.connects: list[str] = []
        self.disconnects = 0

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def address(self) -> str | None:
        return self._address

    def connect(self, address: str) -> None:
        self._address = address
        self._state = ChannelState.CONNECTING
        self.connects.append(address)

    def send(self, payload: str) -> None:
        if self._state != ChannelState.OPEN:
            raise ChannelNotReadyError(self._address)
        self.sent.append(payload)

    def disconnect(self) -> None:
        self._state = ChannelState.CLOSED
        self.disconnects += 1

    # Device side

    def open(self) -> None:
        self._state = ChannelState.OPEN
        if self._listener is not None:
            self._listener.on_open()

    def drop(self) -> None:
        self._state = ChannelState.CLOSED
        if self._listener is not None:
            self._listener.on_close()

    def fail(self, error: Exception) -> None:
        self._state = ChannelState.ERRORED
        if self._listener is not None:
            self._listener.on_error(error)

    def deliver(self, envelope: dict[str, Any]) -> None:
        if self._listener is not None:
            self._listener.on_message(envelope)


class FakeAlarm:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualAlarmScheduler:
    """Alarm scheduler on a virtual clock advanced by the test."""

    def __init__(self) -> None:
        self.now = 0.0
        self.alarms: list[FakeAlarm] = []

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> FakeAlarm:
        alarm = FakeAlarm(self.now + delay_s, callback)
        self.alarms.append(alarm)
        return alarm

    @property
    def pending(self) -> list[FakeAlarm]:
        return [alarm for alarm in self.alarms if not alarm.cancelled and not alarm.fired]

    def advance(self, seconds: float) -> None:
        target = round(self.now + seconds, 9)
        while True:
            due = [alarm for alarm in self.pending if alarm.due <= target]
            if not due:
                break
            alarm = min(due, key=lambda a: a.due)
            self.now = alarm.due
            alarm.fired = True
            alarm.callback()
        self.now = target


class RecordingPersistence(MeasurementPersistence):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.submitted: list[FinalizedMeasurement] = []

    async def submit(self, record: FinalizedMeasurement) -> bool:
        self.submitted.append(record)
        if self.fail:
            raise RuntimeError("persistence service unreachable")
        return True

    async def fetch_history(self) -> list[dict[str, Any]]:
        return [record.to_public() for record in self.submitted]



DISCONNECT = object()


class FakeTransport(WorkerTransport):
    """Presenter side of a worker, driven by the test through ``inbox``."""

    def __init__(self) -> None:
        self.inbox: asyncio.Queue = asyncio.Queue()
        self.outbox: list[dict] = []
        self.connected = False
        self.closed = False

    async def connect(self) -> None:
        self.connected = True

    async def send_json(self, data: Any) -> None:
        self.outbox.append(data)

    async def receive_command(self) -> dict | None:
        item = await self.inbox.get()
        if item is DISCONNECT:
            raise WebSocketDisconnect(1000)
        return item

    async def close(self) -> None:
        self.connected = False
        self.closed = True

    async def is_connected(self) -> bool:
        return self.connected

    def events(self, name: str) -> list[dict]:
        return [message for message in self.outbox if message.get("event") == name]

@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def alarms() -> ManualAlarmScheduler:
    return ManualAlarmScheduler()


@pytest.fixture
def persistence() -> RecordingPersistence:
    return RecordingPersistence()


@pytest.fixture
def session(channel, persistence, alarms) -> MeasurementSession:
    """Session wired to fakes, not connected yet."""
    return MeasurementSession(
        channel,
        persistence,
        CLIENT_ID,
        measuring_timeout_s=30.0,
        selection_unlock_s=2.0,
        alarm_scheduler=alarms,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def connected_session(session, channel) -> MeasurementSession:
    """Session with an open channel. The connection handshake is cleared from ``channel.sent``."""
    session.connect(DEVICE_ADDRESS)
    channel.open()
    channel.sent.clear()
    return session


async def wait_until(predicate: Callable[[], bool], timeout_s: float = 2.0) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    async with asyncio.timeout(timeout_s):
        while not predicate():
            await asyncio.sleep(0.01)
