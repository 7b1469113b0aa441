# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

"""Registry for managing measurement sessions."""

import asyncio
from collections.abc import Callable
from types import TracebackType
from typing import Self

from loguru import logger

from bodyrig.exceptions import SessionInUseError, SessionLimitReachedError, SessionNotFoundError
from bodyrig.session.manager import MeasurementSession


class SessionRegistry:
    """
    Owns the measurement sessions, one per device address.

    A device address has at most one owner at a time. The owner acquires the session,
    and releasing it closes the session before a new one can be created for the same
    address.
    """

    def __init__(
        self,
        session_factory: Callable[[], MeasurementSession],
        max_sessions: int = 4,
        shutdown_timeout_s: float = 10.0,
    ) -> None:
        """
        Initialize the registry.

        Args:
            session_factory: Builds a fresh, unconnected session.
            max_sessions: Maximum number of concurrent sessions allowed.
            shutdown_timeout_s: Seconds to wait for sessions to close gracefully.
        """
        self._session_factory = session_factory
        self._sessions: dict[str, MeasurementSession] = {}
        self._lock = asyncio.Lock()
        self._max_sessions = max_sessions
        self._shutdown_timeout_s = shutdown_timeout_s

    async def acquire(self, address: str) -> MeasurementSession:
        """
        Create and register the session for a device address.

        Raises:
            SessionInUseError: If the address already has an owner.
            SessionLimitReachedError: If max_sessions is reached.
        """
        async with self._lock:
            if address in self._sessions:
                raise SessionInUseError(address)

            if len(self._sessions) >= self._max_sessions:
                raise SessionLimitReachedError(self._max_sessions)

            session = self._session_factory()
            self._sessions[address] = session
            logger.info(f"Session registered: {address}. Total: {len(self._sessions)}/{self._max_sessions}")
            return session

    async def release(self, address: str) -> None:
        """Unregister and close the session of a device address."""
        async with self._lock:
            session = self._sessions.pop(address, None)

        if session:
            try:
                await session.aclose()
            except Exception as e:
                logger.error(f"Error closing session {address}: {e}")
            logger.info(f"Session unregistered: {address}")

    def get(self, address: str) -> MeasurementSession:
        """
        Retrieve the session of a device address.

        Raises:
            SessionNotFoundError: If no session exists for the address.
        """
        session = self._sessions.get(address)
        if session is None:
            raise SessionNotFoundError(address)
        return session

    def list_all(self) -> list[MeasurementSession]:
        return list(self._sessions.values())

    def get_status_summary(self) -> dict:
        return {
            "total_sessions": len(self._sessions),
            "max_sessions": self._max_sessions,
            "sessions": {
                address: {
                    "connection_state": session.connection_state.value,
                    "phase": session.phase.value,
                    "error": None if session.last_error is None else session.last_error.error_code,
                }
                for address, session in self._sessions.items()
            },
        }

    async def shutdown_all(self) -> None:
        """Concurrently close all registered sessions and clear the registry."""
        logger.info(f"Shutting down {len(self._sessions)} measurement sessions...")

        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()

        tasks = [session.aclose() for session in sessions]

        if tasks:
            try:
                await asyncio.wait_for(
                    asyncio.gather(*tasks, return_exceptions=True),
                    timeout=self._shutdown_timeout_s,
                )
            except TimeoutError:
                logger.error(f"Some sessions did not close within {self._shutdown_timeout_s}s")

        logger.info("All measurement sessions shut down")

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.shutdown_all()
