# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

import asyncio
from collections.abc import Coroutine
from dataclasses import dataclass
from enum import Enum
from typing import Any

from loguru import logger

from .transport.worker_transport import WorkerTransport


class WorkerState(str, Enum):
    """Worker lifecycle states."""

    INITIALIZING = "initializing"
    RUNNING = "running"
    ERROR = "error"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


@dataclass
class WorkerStatus:
    state: WorkerState
    address: str | None = None
    message: str = ""

    def to_json(self) -> dict:
        return {
            "event": "status",
            "state": self.state.value,
            "address": self.address,
            "message": self.message,
        }


class TransportWorker:
    """Base class for workers that serve one presenter over a transport."""

    # Grace period for sibling loops to unwind once one of them has ended
    cancel_timeout_s = 2.0

    def __init__(self, transport: WorkerTransport) -> None:
        self.transport = transport
        self.state = WorkerState.INITIALIZING
        self.error_message: str | None = None
        self._stop_requested = False

    async def run_concurrent(self, **loops: Coroutine[Any, Any, None]) -> None:
        """
        Run named loops until the first one ends, then cancel the others.

        Raises:
            Exception: Whatever the loop that ended first raised.
        """
        tasks = {asyncio.create_task(coro, name=name): name for name, coro in loops.items()}
        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                logger.debug(f"Worker loop '{tasks[task]}' ended")

            for task in pending:
                task.cancel()
            if pending:
                try:
                    async with asyncio.timeout(self.cancel_timeout_s):
                        await asyncio.gather(*pending, return_exceptions=True)
                except TimeoutError:
                    logger.warning(f"Worker loops {[tasks[t] for t in pending]} did not stop in time")

            failed = [task for task in done if not task.cancelled() and task.exception() is not None]
            if failed:
                raise failed[0].exception()
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

    async def shutdown(self) -> None:
        """Stop the loops and close the transport. Safe to call more than once."""
        if self.state == WorkerState.STOPPED:
            return
        self.state = WorkerState.SHUTTING_DOWN
        self._stop_requested = True
        await self.transport.close()
        self.state = WorkerState.STOPPED
