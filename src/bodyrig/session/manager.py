# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

"""
Measurement session state machine.

A session drives one rig over one device channel::

    idle -> awaiting_start -> measuring -> awaiting_selection -> (manual_entry_pending | measuring)
         -> complete -> idle

The rig never acknowledges ``START_MEASUREMENT``. Step selection is unlocked by a
fixed delay that models its startup latency, and a measuring window closes after a
timeout in case the rig never completes a step.
"""

import asyncio
import math
from collections.abc import Callable, Coroutine
from datetime import datetime
from typing import Any
from uuid import uuid4

from loguru import logger

from bodyrig.device.channel import DeviceChannel
from bodyrig.device.field_mapper import to_internal
from bodyrig.exceptions import (
    BodyRigBaseException,
    ChannelNotReadyError,
    ConnectionLostError,
    InvalidManualValueError,
    MalformedMessageError,
    ManualEntryNotPendingError,
)
from bodyrig.schemas.device import START_MEASUREMENT, ClientConnectedMessage, DoneMessage, parse_device_message
from bodyrig.schemas.measurement import FinalizedMeasurement, LiveTelemetry, MeasurementStep
from bodyrig.schemas.session import ConnectionState, SessionPhase, SessionSnapshot
from bodyrig.services.persistence import MeasurementPersistence

from .alarms import AlarmScheduler, AsyncioAlarmScheduler, SessionAlarms
from .events import SessionEvent, SessionEventType

SessionListener = Callable[[SessionEvent], None]

_SELECTABLE_PHASES = (SessionPhase.MEASURING, SessionPhase.AWAITING_SELECTION)


class MeasurementSession:
    """Protocol core for one rig: owns the session state, its alarms and the channel listener role."""

    MEASURING_TIMEOUT_ALARM = "measuring_timeout"
    SELECTION_UNLOCK_ALARM = "selection_unlock"

    def __init__(
        self,
        channel: DeviceChannel,
        persistence: MeasurementPersistence,
        client_id: str,
        *,
        measuring_timeout_s: float = 30.0,
        selection_unlock_s: float = 2.0,
        alarm_scheduler: AlarmScheduler | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """
        Initialize the session.

        Args:
            channel: Connection to the rig. The session registers itself as its listener.
            persistence: Receiver of finalized measurements.
            client_id: Identity announced to the rig on every connection.
            measuring_timeout_s: Lifetime of a measuring window without completion.
            selection_unlock_s: Delay after START_MEASUREMENT before steps may be selected.
            alarm_scheduler: Source of one-shot alarms, the running event loop by default.
            clock: Wall clock used to stamp finalized measurements.
        """
        self.channel = channel
        self.persistence = persistence
        self.client_id = client_id
        self.measuring_timeout_s = measuring_timeout_s
        self.selection_unlock_s = selection_unlock_s
        self._alarms = SessionAlarms(alarm_scheduler or AsyncioAlarmScheduler())
        self._clock = clock

        self.connection_state = ConnectionState.DISCONNECTED
        self.phase = SessionPhase.IDLE
        self.active_step: MeasurementStep | None = None
        self.session_started_at: datetime | None = None
        self.last_command_sent: str | None = None
        self.last_sent_measurement_id: int | None = None
        self.can_select_measurements = False
        self.measuring = False
        self.live_telemetry: LiveTelemetry | None = None
        self.history: list[FinalizedMeasurement] = []
        self.last_error: BodyRigBaseException | None = None

        # Where a cancelled manual entry returns to
        self._resume: tuple[SessionPhase, MeasurementStep | None] = (SessionPhase.IDLE, None)
        self._listeners: list[SessionListener] = []
        self._background_tasks: set[asyncio.Task] = set()
        self._closed = False

        self.channel.set_listener(self)

    # Presenter surface

    @property
    def address(self) -> str | None:
        return self.channel.address

    @property
    def is_closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener for session events. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            address=self.address,
            client_id=self.client_id,
            connection_state=self.connection_state,
            phase=self.phase,
            measuring=self.measuring,
            can_select_measurements=self.can_select_measurements,
            active_step_id=None if self.active_step is None else int(self.active_step),
            last_sent_measurement_id=self.last_sent_measurement_id,
            last_command_sent=self.last_command_sent,
            session_started_at=self.session_started_at,
            live_telemetry=None if self.live_telemetry is None else self.live_telemetry.values,
            last_error=None if self.last_error is None else self.last_error.error_code,
            history_size=len(self.history),
        )

    # Connection lifecycle

    def connect(self, address: str) -> None:
        """Connect to the rig at ``address``. A changed address resets the running measurement first."""
        if address == self.channel.address and self.connection_state in (
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
        ):
            logger.debug(f"Session already bound to {address}")
            return

        if self.channel.address is not None and address != self.channel.address:
            self._reset_measurement()

        self.connection_state = ConnectionState.CONNECTING
        self.channel.connect(address)
        self._publish_state()

    def reconnect(self) -> None:
        """Drop the current connection and dial the same address again."""
        address = self.channel.address
        if address is None:
            raise ChannelNotReadyError(message="No device address to reconnect to.")
        logger.info(f"Reconnecting to device at {address}")
        self.channel.disconnect()
        self._reset_measurement()
        self.connection_state = ConnectionState.DISCONNECTED
        self.connect(address)

    def disconnect(self) -> None:
        self.channel.disconnect()
        self._reset_measurement()
        self.connection_state = ConnectionState.DISCONNECTED
        self._publish_state()

    def close(self) -> None:
        """Dispose the session: cancel alarms and close the channel before anything else can run."""
        if self._closed:
            return
        self._closed = True
        self._alarms.cancel_all()
        self.channel.set_listener(None)
        self.channel.disconnect()
        self._listeners.clear()
        logger.info(f"Closed measurement session for {self.address}")

    async def aclose(self) -> None:
        """Close and wait for the channel and pending persistence hand-offs to finish."""
        self.close()
        await self.channel.wait_closed()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

    # Operator intents

    def start_measurement(self) -> None:
        """
        Send START_MEASUREMENT and open a fresh measuring window.

        Raises:
            ChannelNotReadyError: If the rig is not connected. The session state is left unchanged.
        """
        try:
            self.channel.send(START_MEASUREMENT)
        except ChannelNotReadyError as e:
            self._record_error(e)
            raise

        self._alarms.cancel_all()
        self.session_started_at = self._clock()
        self.last_command_sent = START_MEASUREMENT
        self.active_step = None
        self.live_telemetry = None
        self.can_select_measurements = False
        self.measuring = True
        self.last_error = None
        self._resume = (SessionPhase.IDLE, None)
        self._transition(SessionPhase.AWAITING_START)

        self._transition(SessionPhase.MEASURING)
        self._alarms.arm(self.MEASURING_TIMEOUT_ALARM, self.measuring_timeout_s, self._on_measuring_timeout)
        self._alarms.arm(self.SELECTION_UNLOCK_ALARM, self.selection_unlock_s, self._on_selection_unlock)
        logger.info(f"Measurement started on {self.address}")

    def select_step(self, code: Any) -> bool:
        """
        Select a measurement step by protocol code.

        Device steps are only sent while step selection is unlocked. Otherwise the call
        is a no-op. The manual step never reaches the rig and always opens the manual
        entry prompt.

        Returns:
            True if the selection took effect.

        Raises:
            UnknownStepError: If ``code`` is not a catalogue step.
            ChannelNotReadyError: If the rig is not connected.
        """
        step = MeasurementStep.from_code(code)
        if step.is_manual:
            self._open_manual_entry(step)
            return True

        if not self.can_select_measurements or self.phase not in _SELECTABLE_PHASES:
            logger.debug(f"Ignoring selection of {step.label}: selection unavailable in phase {self.phase}")
            return False

        try:
            self.channel.send(step.command)
        except ChannelNotReadyError as e:
            self._record_error(e)
            raise

        self.active_step = step
        self.last_sent_measurement_id = int(step)
        self.last_command_sent = step.command
        self.live_telemetry = None
        logger.info(f"Requested {step.label} (code {step.command})")
        self._transition(SessionPhase.MEASURING)
        return True

    def submit_manual_value(self, value: Any) -> FinalizedMeasurement:
        """
        Finalize the pending manual step with an operator-entered value.

        Raises:
            ManualEntryNotPendingError: If no manual entry is open.
            InvalidManualValueError: If ``value`` is not a finite positive number.
        """
        try:
            if self.phase != SessionPhase.MANUAL_ENTRY_PENDING:
                raise ManualEntryNotPendingError()
            ankle_height = self._parse_manual_value(value)
        except BodyRigBaseException as e:
            self._record_error(e)
            raise

        now = self._clock()
        record = FinalizedMeasurement(
            id=uuid4(),
            date=now.date(),
            time=now.time().replace(microsecond=0),
            ankle_height=ankle_height,
        )
        self.active_step = None
        self._finalize(record)
        self._complete()
        return record

    def cancel_manual_entry(self) -> None:
        if self.phase != SessionPhase.MANUAL_ENTRY_PENDING:
            raise ManualEntryNotPendingError()
        phase, step = self._resume
        self.active_step = step
        logger.info("Manual entry cancelled")
        self._transition(phase)

    # Channel listener

    def on_open(self) -> None:
        if self._closed:
            return
        self.connection_state = ConnectionState.CONNECTED
        self.last_error = None
        try:
            self.channel.send(ClientConnectedMessage(client_id=self.client_id).to_wire())
        except ChannelNotReadyError as e:
            logger.warning(f"Could not announce client {self.client_id}: {e.message}")
        self._publish_state()

    def on_error(self, error: Exception) -> None:
        self._connection_lost(ConnectionState.ERRORED, str(error))

    def on_close(self) -> None:
        self._connection_lost(ConnectionState.DISCONNECTED, None)

    def on_message(self, envelope: dict[str, Any]) -> None:
        if self._closed:
            return
        try:
            message = parse_device_message(envelope)
        except MalformedMessageError as e:
            logger.debug(f"Discarding device message: {e.message}")
            return

        if message is None:
            logger.debug(f"Ignoring device message of type {envelope.get('type')!r}")
        elif isinstance(message, DoneMessage):
            self._handle_done(message.data)
        else:
            self._handle_live(message.data)

    # Internals

    def _handle_live(self, data: dict[str, Any]) -> None:
        if self.phase not in _SELECTABLE_PHASES:
            logger.debug(f"Ignoring live measurement in phase {self.phase}")
            return
        self.live_telemetry = LiveTelemetry(values=to_internal(data), step=self.active_step, received_at=self._clock())
        self._emit(SessionEvent(SessionEventType.LIVE_MEASUREMENT, self.live_telemetry.values))

    def _handle_done(self, data: dict[str, Any]) -> None:
        now = self._clock()
        record = FinalizedMeasurement.model_validate(
            {
                **to_internal(data),
                "id": uuid4(),
                "date": now.date(),
                "time": now.time().replace(microsecond=0),
            }
        )
        unexpected = record.non_numeric_readings()
        if unexpected:
            logger.warning(f"Device reported non-numeric readings {unexpected}, keeping them as sent")

        self.live_telemetry = None
        self._emit(SessionEvent(SessionEventType.LIVE_MEASUREMENT, None))
        self._finalize(record)

        if self.phase in _SELECTABLE_PHASES:
            self.active_step = None
            self._complete()
        elif self.phase == SessionPhase.MANUAL_ENTRY_PENDING:
            self._close_measuring_window()
            self._resume = (SessionPhase.IDLE, None)
            self._publish_state()
        else:
            self._publish_state()

    def _finalize(self, record: FinalizedMeasurement) -> None:
        self.history.insert(0, record)
        logger.info(f"Measurement {record.id} finalized: {record.to_public()}")
        self._emit(SessionEvent(SessionEventType.MEASUREMENT_FINALIZED, record.to_public()))
        self._spawn(self._persist(record))

    async def _persist(self, record: FinalizedMeasurement) -> None:
        try:
            await self.persistence.submit(record)
        except Exception as e:
            logger.error(f"Persistence hand-off for measurement {record.id} failed: {e}")

    def _complete(self) -> None:
        self._transition(SessionPhase.COMPLETE)
        self._close_measuring_window()
        self._resume = (SessionPhase.IDLE, None)
        self._transition(SessionPhase.IDLE)

    def _open_manual_entry(self, step: MeasurementStep) -> None:
        if self.phase != SessionPhase.MANUAL_ENTRY_PENDING:
            self._resume = (self.phase, self.active_step)
        self.active_step = step
        logger.info(f"Awaiting manual entry for {step.label}")
        self._transition(SessionPhase.MANUAL_ENTRY_PENDING)

    def _on_selection_unlock(self) -> None:
        if self._closed:
            return
        self.can_select_measurements = True
        if self.phase == SessionPhase.MEASURING and self.active_step is None:
            self._transition(SessionPhase.AWAITING_SELECTION)
        else:
            self._publish_state()

    def _on_measuring_timeout(self) -> None:
        if self._closed:
            return
        logger.warning(f"No completion from device within {self.measuring_timeout_s}s, closing measuring window")
        self._close_measuring_window()
        if self.phase in _SELECTABLE_PHASES:
            self.active_step = None
            self.live_telemetry = None
            self._transition(SessionPhase.IDLE)
        else:
            if self.phase == SessionPhase.MANUAL_ENTRY_PENDING:
                self._resume = (SessionPhase.IDLE, None)
            self._publish_state()

    def _close_measuring_window(self) -> None:
        self._alarms.cancel_all()
        self.measuring = False
        self.can_select_measurements = False

    def _connection_lost(self, state: ConnectionState, reason: str | None) -> None:
        if self._closed:
            return
        self._reset_measurement()
        self.connection_state = state
        self._surface(ConnectionLostError(self.address, reason))
        self._publish_state()

    def _reset_measurement(self) -> None:
        self._close_measuring_window()
        self.active_step = None
        self.live_telemetry = None
        self._resume = (SessionPhase.IDLE, None)
        self.phase = SessionPhase.IDLE

    def _transition(self, phase: SessionPhase) -> None:
        if phase != self.phase:
            logger.debug(f"Session phase {self.phase} -> {phase}")
        self.phase = phase
        self._publish_state()

    @staticmethod
    def _parse_manual_value(value: Any) -> float:
        if isinstance(value, bool):
            raise InvalidManualValueError(value)
        try:
            number = float(value)
        except (TypeError, ValueError) as e:
            raise InvalidManualValueError(value) from e
        if not math.isfinite(number) or number <= 0:
            raise InvalidManualValueError(value)
        return number

    def _record_error(self, error: BodyRigBaseException) -> None:
        self.last_error = error
        logger.warning(error.message)

    def _surface(self, error: BodyRigBaseException) -> None:
        self._record_error(error)
        self._emit(SessionEvent(SessionEventType.ERROR, {"error_code": error.error_code, "message": error.message}))

    def _publish_state(self) -> None:
        self._emit(SessionEvent(SessionEventType.STATE, self.snapshot().model_dump(mode="json", by_alias=True)))

    def _emit(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Session listener failed handling {event.type}")

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
