# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

from abc import ABC, abstractmethod
from enum import StrEnum
from typing import Any, Protocol


class ChannelState(StrEnum):
    """Transport-level state of a device channel."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    ERRORED = "errored"


class ChannelListener(Protocol):
    """Receiver of channel events. Callbacks run on the event loop and must not block."""

    def on_open(self) -> None: ...

    def on_error(self, error: Exception) -> None: ...

    def on_message(self, envelope: dict[str, Any]) -> None: ...

    def on_close(self) -> None: ...


class DeviceChannel(ABC):
    """Abstract interface for the single persistent connection to a rig (transport only, no protocol logic)."""

    def __init__(self) -> None:
        self._listener: ChannelListener | None = None

    def set_listener(self, listener: ChannelListener | None) -> None:
        """Attach the receiver of channel events, replacing any previous one."""
        self._listener = listener

    @property
    @abstractmethod
    def state(self) -> ChannelState:
        """Current transport state."""

    @property
    @abstractmethod
    def address(self) -> str | None:
        """Address of the current or last connection."""

    @property
    def is_open(self) -> bool:
        return self.state == ChannelState.OPEN

    @abstractmethod
    def connect(self, address: str) -> None:
        """Start connecting to the device. Returns immediately, outcome is reported via the listener."""

    @abstractmethod
    def send(self, payload: str) -> None:
        """Queue a payload for the device. Raises ChannelNotReadyError when not open."""

    @abstractmethod
    def disconnect(self) -> None:
        """Tear down the connection. No listener callbacks fire for it afterwards."""

    async def wait_closed(self) -> None:  # noqa: B027
        """Wait until background connection work has finished."""
