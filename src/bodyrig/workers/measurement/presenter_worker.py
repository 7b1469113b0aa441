# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

import asyncio

from fastapi.websockets import WebSocketDisconnect
from loguru import logger

from bodyrig.exceptions import BodyRigBaseException
from bodyrig.session.events import SessionEvent, SessionEventType
from bodyrig.session.manager import MeasurementSession
from bodyrig.workers.measurement.commands import handle_command, parse_command
from bodyrig.workers.transport.worker_transport import WorkerTransport
from bodyrig.workers.transport_worker import TransportWorker, WorkerState, WorkerStatus


class MeasurementPresenterWorker(TransportWorker):
    """Bridges one presenter client and the measurement session of one rig."""

    def __init__(self, address: str, session: MeasurementSession, transport: WorkerTransport) -> None:
        super().__init__(transport)
        self.address = address
        self.session = session
        self._events: asyncio.Queue[SessionEvent] = asyncio.Queue()

    async def run(self) -> None:
        """Main worker loop."""
        unsubscribe = self.session.subscribe(self._events.put_nowait)
        try:
            await self.transport.connect()

            self.session.connect(self.address)
            self.state = WorkerState.RUNNING
            logger.info(f"Presenter attached to device session {self.address}")
            status = WorkerStatus(state=self.state, address=self.address, message="Session ready")
            await self.transport.send_json(status.to_json())

            await self.run_concurrent(broadcast=self._broadcast_loop(), commands=self._command_loop())

        except WebSocketDisconnect:
            logger.info(f"Presenter for {self.address} disconnected")
        except Exception as e:
            self.state = WorkerState.ERROR
            self.error_message = str(e)
            logger.error(f"Presenter worker error: {e}")
            status = WorkerStatus(state=self.state, address=self.address, message=str(e))
            await self.transport.send_json(status.to_json())
        finally:
            unsubscribe()
            await self.shutdown()

    async def _broadcast_loop(self) -> None:
        """Forward session events to the presenter in order."""
        try:
            while not self._stop_requested:
                event = await self._events.get()
                await self.transport.send_json(event.to_json())
        except asyncio.CancelledError:
            pass

    async def _command_loop(self) -> None:
        """Handle operator intents from the presenter."""
        try:
            while not self._stop_requested:
                command = await self.transport.receive_command()
                if command is None:
                    continue

                try:
                    response = handle_command(self.session, parse_command(command))
                except BodyRigBaseException as e:
                    logger.warning(f"Rejected presenter command {command}: {e.message}")
                    await self.transport.send_json(
                        SessionEvent(
                            SessionEventType.ERROR, {"error_code": e.error_code, "message": e.message}
                        ).to_json()
                    )
                    continue

                if response:
                    await self.transport.send_json(response)
        except asyncio.CancelledError:
            pass
