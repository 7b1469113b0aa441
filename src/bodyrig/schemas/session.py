# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERRORED = "errored"


class SessionPhase(StrEnum):
    IDLE = "idle"
    AWAITING_START = "awaiting_start"
    MEASURING = "measuring"
    AWAITING_SELECTION = "awaiting_selection"
    MANUAL_ENTRY_PENDING = "manual_entry_pending"
    COMPLETE = "complete"


class SessionSnapshot(BaseModel):
    """Read-only view of a measurement session handed to presenters."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    address: str | None = None
    client_id: str
    connection_state: ConnectionState
    phase: SessionPhase
    measuring: bool = False
    can_select_measurements: bool = False
    active_step_id: int | None = None
    last_sent_measurement_id: int | None = None
    last_command_sent: str | None = None
    session_started_at: datetime | None = None
    live_telemetry: dict[str, Any] | None = None
    last_error: str | None = Field(default=None, description="Error code of the last surfaced failure")
    history_size: int = 0
