# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

from abc import ABC, abstractmethod
from typing import Any


class WorkerTransport(ABC):
    """Abstract base for the link between a worker and its presenter client."""

    @abstractmethod
    async def connect(self) -> None:
        """Mark the presenter link as ready."""

    @abstractmethod
    async def send_json(self, data: Any) -> None:
        """Push an event to the presenter. Delivery failures are logged, not raised."""

    @abstractmethod
    async def receive_command(self) -> dict | None:
        """
        Wait for the next presenter intent.

        Returns:
            The decoded command object, or None on timeout or unreadable input.

        Raises:
            WebSocketDisconnect: When the presenter has gone away.
        """

    @abstractmethod
    async def close(self) -> None:
        """Close the presenter link. Safe to call more than once."""

    @abstractmethod
    async def is_connected(self) -> bool:
        """Whether the presenter is still attached."""
