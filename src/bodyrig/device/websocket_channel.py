# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

import asyncio
from typing import Any

from loguru import logger
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from bodyrig.exceptions import ChannelNotReadyError, MalformedMessageError
from bodyrig.schemas.device import decode_envelope

from .channel import ChannelState, DeviceChannel


class WebSocketDeviceChannel(DeviceChannel):
    """
    Device channel over a websocket to ``ws://<address>:<port>/``.

    Every connection attempt gets a generation number. Callbacks of a connection
    whose generation is no longer current are dropped, so a torn down connection
    can never reach the listener.
    """

    def __init__(self, port: int = 81, open_timeout_s: float = 5.0) -> None:
        super().__init__()
        self.port = port
        self.open_timeout_s = open_timeout_s
        self._address: str | None = None
        self._state = ChannelState.IDLE
        self._generation = 0
        self._task: asyncio.Task | None = None
        self._outbox: asyncio.Queue[str] | None = None
        self._closing: set[asyncio.Task] = set()

    @staticmethod
    def url_for(address: str, port: int) -> str:
        return f"ws://{address}:{port}/"

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def address(self) -> str | None:
        return self._address

    def connect(self, address: str) -> None:
        if address == self._address and self._state in (ChannelState.CONNECTING, ChannelState.OPEN):
            logger.debug(f"Already connected or connecting to {address}")
            return

        if self._task is not None:
            logger.info(f"Switching device address from {self._address} to {address}")
            self.disconnect()

        self._generation += 1
        self._address = address
        self._state = ChannelState.CONNECTING
        self._outbox = asyncio.Queue()
        self._task = asyncio.create_task(
            self._run(self._generation, address, self._outbox),
            name=f"device-channel-{address}",
        )

    def send(self, payload: str) -> None:
        if self._state != ChannelState.OPEN or self._outbox is None:
            raise ChannelNotReadyError(self._address)
        self._outbox.put_nowait(payload)

    def disconnect(self) -> None:
        self._generation += 1
        self._outbox = None
        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
                self._closing.add(self._task)
                self._task.add_done_callback(self._closing.discard)
            self._task = None
            logger.info(f"Disconnected from device at {self._address}")
        if self._state != ChannelState.IDLE:
            self._state = ChannelState.CLOSED

    async def wait_closed(self) -> None:
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)

    async def _run(self, generation: int, address: str, outbox: asyncio.Queue[str]) -> None:
        url = self.url_for(address, self.port)
        logger.info(f"Connecting to device at {url}")
        try:
            async with connect(url, open_timeout=self.open_timeout_s) as websocket:
                if generation != self._generation:
                    return
                self._state = ChannelState.OPEN
                logger.info(f"Device connection open: {url}")
                self._emit(generation, "on_open")

                writer = asyncio.create_task(self._write_loop(websocket, outbox))
                try:
                    async for raw in websocket:
                        self._dispatch(generation, raw)
                finally:
                    writer.cancel()
        except ConnectionClosed as e:
            logger.warning(f"Device connection closed abruptly: {e}")
        except (OSError, TimeoutError, InvalidURI, InvalidHandshake) as e:
            logger.error(f"Could not connect to device at {url}: {e}")
            if generation == self._generation:
                self._state = ChannelState.ERRORED
                self._emit(generation, "on_error", e)
            return

        if generation == self._generation:
            logger.info(f"Device connection closed: {url}")
            self._state = ChannelState.CLOSED
            self._emit(generation, "on_close")

    async def _write_loop(self, websocket: ClientConnection, outbox: asyncio.Queue[str]) -> None:
        """
        Drain queued payloads to the device in order.

        A payload that cannot be sent closes the connection, so the listener sees
        ``on_close`` and no later payload is queued behind it.
        """
        try:
            while True:
                payload = await outbox.get()
                await websocket.send(payload)
                logger.debug(f"Sent to device: {payload}")
        except ConnectionClosed:
            pass
        except Exception as e:
            logger.error(f"Failed to send {payload!r} to device, closing connection: {e}")
            await websocket.close(code=1011, reason="send failed")

    def _dispatch(self, generation: int, raw: str | bytes) -> None:
        try:
            envelope = decode_envelope(raw)
        except MalformedMessageError:
            # Plain-text keepalives share the channel with JSON messages
            logger.debug(f"Discarding unstructured device payload: {raw!r}")
            return
        self._emit(generation, "on_message", envelope)

    def _emit(self, generation: int, event: str, *args: Any) -> None:
        if generation != self._generation or self._listener is None:
            return
        try:
            getattr(self._listener, event)(*args)
        except Exception:
            logger.exception(f"Channel listener failed handling {event}")
