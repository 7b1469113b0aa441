# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

import asyncio
import json
from typing import Any

from fastapi import WebSocket
from fastapi.websockets import WebSocketDisconnect
from loguru import logger

from .worker_transport import WorkerTransport


class WebSocketTransport(WorkerTransport):
    """Presenter transport over an accepted FastAPI websocket."""

    def __init__(self, websocket: WebSocket, receive_timeout_s: float = 30.0):
        """
        Initialize the transport.

        Args:
            websocket: Websocket already accepted by the route.
            receive_timeout_s: Seconds to wait for a command before yielding None.
        """
        self.websocket = websocket
        self.receive_timeout_s = receive_timeout_s
        self._connected = False

    async def connect(self) -> None:
        """Already accepted by FastAPI, mark as ready."""
        self._connected = True
        logger.info("Presenter websocket connected")

    async def send_json(self, data: Any) -> None:
        """Send an event to the presenter. Dropped once the presenter has gone away."""
        if not self._connected:
            return
        try:
            await self.websocket.send_json(data)
        except Exception as e:
            logger.warning(f"Failed to send JSON to presenter: {e}")

    async def receive_command(self) -> dict | None:
        """Receive the next command object from the presenter."""
        try:
            async with asyncio.timeout(self.receive_timeout_s):
                message_text = await self.websocket.receive_text()
            command = json.loads(message_text)
        except TimeoutError:
            return None
        except WebSocketDisconnect:
            # Presenter went away, re-raise so the worker shuts down
            self._connected = False
            raise
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON from presenter: {e}")
            return None
        except RuntimeError as e:
            # "Cannot call receive once a disconnect message has been received"
            logger.debug(f"Presenter websocket already disconnected: {e}")
            self._connected = False
            raise WebSocketDisconnect(1000) from e

        if not isinstance(command, dict):
            logger.warning(f"Ignoring non-object command from presenter: {command!r}")
            return None
        return command

    async def close(self) -> None:
        """Close the presenter websocket once."""
        if not self._connected:
            return
        self._connected = False
        try:
            await self.websocket.close(code=1000, reason="Normal shutdown")
        except Exception as e:
            logger.debug(f"Error closing presenter websocket: {e}")

    async def is_connected(self) -> bool:
        """Check connection status."""
        return self._connected
