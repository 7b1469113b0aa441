# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

"""Stand-in for the measurement rig, speaking its websocket protocol."""

import asyncio
import json
import random
from typing import Any

from loguru import logger
from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from bodyrig.device.field_mapper import to_wire
from bodyrig.exceptions import UnknownStepError
from bodyrig.schemas.device import START_MEASUREMENT
from bodyrig.schemas.measurement import MeasurementStep

# Typical adult readings in cm, keyed by internal field name
STEP_FIELDS: dict[MeasurementStep, tuple[str, float]] = {
    MeasurementStep.CROWN_HEIGHT: ("crownHeight", 176.0),
    MeasurementStep.SHOULDER_HEIGHT: ("shoulderHeight", 144.0),
    MeasurementStep.ELBOW_REACH: ("elbowReach", 36.0),
    MeasurementStep.HIP_HEIGHT: ("hipHeight", 92.0),
    MeasurementStep.HAND_REACH: ("handReach", 78.0),
    MeasurementStep.KNEE_HEIGHT: ("kneeHeight", 50.0),
}


class RigSimulator:
    """
    Simulated rig.

    For every selected step it streams a few ``live_measurement`` frames converging on
    a reading, then a ``done`` frame. Plain-text keepalives are sent in between.
    """

    def __init__(
        self,
        host: str = "0.0.0.0",  # noqa: S104
        port: int = 81,
        live_frames: int = 3,
        frame_interval_s: float = 0.3,
        keepalive_interval_s: float = 5.0,
        seed: int | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.live_frames = live_frames
        self.frame_interval_s = frame_interval_s
        self.keepalive_interval_s = keepalive_interval_s
        self._rng = random.Random(seed)  # noqa: S311

    def sample(self, step: MeasurementStep) -> dict[str, Any]:
        """Final reading of a step with internal field names."""
        if step == MeasurementStep.NAME_AND_AGE:
            return {"name": "Simulated Athlete", "age": self._rng.randint(18, 40), "weight": 72.5}
        field, typical = STEP_FIELDS[step]
        return {field: round(typical + self._rng.uniform(-3.0, 3.0), 1)}

    async def handler(self, websocket: ServerConnection) -> None:
        logger.info(f"Client connected from {websocket.remote_address}")
        keepalive = asyncio.create_task(self._keepalive(websocket))
        try:
            async for message in websocket:
                await self.handle_message(websocket, message)
        except ConnectionClosed:
            pass
        finally:
            keepalive.cancel()
            logger.info(f"Client {websocket.remote_address} disconnected")

    async def handle_message(self, websocket: ServerConnection, message: str | bytes) -> None:
        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")

        if message == START_MEASUREMENT:
            logger.info("Measurement sequence started")
            return

        if message.strip().isdigit():
            try:
                step = MeasurementStep.from_code(message.strip())
            except UnknownStepError as e:
                logger.warning(e.message)
                return
            if step.is_manual:
                logger.warning(f"{step.label} cannot be measured by the rig")
                return
            await self._measure(websocket, step)
            return

        try:
            envelope = json.loads(message)
        except json.JSONDecodeError:
            logger.debug(f"Ignoring unknown message {message!r}")
            return
        if isinstance(envelope, dict) and envelope.get("type") == "UI_CLIENT_CONNECTED":
            logger.info(f"Operator client announced: {envelope.get('clientId')}")

    async def _measure(self, websocket: ServerConnection, step: MeasurementStep) -> None:
        reading = self.sample(step)
        logger.info(f"Measuring {step.label}")
        for frame in range(1, self.live_frames + 1):
            partial = {
                key: round(value * frame / self.live_frames, 1) if isinstance(value, float) else value
                for key, value in reading.items()
            }
            await websocket.send(json.dumps({"type": "live_measurement", "data": to_wire(partial)}))
            await asyncio.sleep(self.frame_interval_s)
        await websocket.send(json.dumps({"type": "done", "data": to_wire(reading)}))

    async def _keepalive(self, websocket: ServerConnection) -> None:
        try:
            while True:
                await asyncio.sleep(self.keepalive_interval_s)
                await websocket.send("alive")
        except ConnectionClosed:
            pass

    async def serve_forever(self) -> None:
        async with serve(self.handler, self.host, self.port) as server:
            logger.info(f"Rig simulator listening on ws://{self.host}:{self.port}/")
            await server.serve_forever()
