# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

"""Operator intents received from presenters."""

from http import HTTPStatus
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from bodyrig.exceptions import BodyRigBaseException
from bodyrig.session.events import SessionEvent, SessionEventType
from bodyrig.session.manager import MeasurementSession


class UnknownCommandError(BodyRigBaseException):
    """Raised when an unknown command is received.

    Use the static factory method to create instances:
        UnknownCommandError.for_command("invalid_cmd")
    """

    @staticmethod
    def for_command(command: str) -> "UnknownCommandError":
        """Create error for when an unknown command is received."""
        return UnknownCommandError(
            message=f"Unknown command: {command}",
            error_code="unknown_command",
            http_status=HTTPStatus.BAD_REQUEST,
        )


class InvalidPayloadError(BodyRigBaseException):
    """Raised when a command payload is invalid.

    Use the static factory method to create instances:
        InvalidPayloadError.for_command("select_step", "missing required field")
    """

    @staticmethod
    def for_command(command: str, reason: str) -> "InvalidPayloadError":
        """Create error for invalid payload for a specific command."""
        return InvalidPayloadError(
            message=f"Invalid {command} payload: {reason}",
            error_code="invalid_payload",
            http_status=HTTPStatus.BAD_REQUEST,
        )


# =============================================================================
# Command Models
# =============================================================================


class GetStateCommand(BaseModel):
    """Return the current session snapshot."""

    command: Literal["get_state"] = "get_state"


class GetHistoryCommand(BaseModel):
    """Return the finalized measurements of this session, most recent first."""

    command: Literal["get_history"] = "get_history"


class StartMeasurementCommand(BaseModel):
    """Send START_MEASUREMENT and open a measuring window."""

    command: Literal["start_measurement"] = "start_measurement"


class SelectStepCommand(BaseModel):
    """Select a measurement step by protocol code (0-7)."""

    command: Literal["select_step"] = "select_step"
    step: int = Field(ge=0, le=7)


class SubmitManualValueCommand(BaseModel):
    """Submit the operator-entered value for the manual step."""

    command: Literal["submit_manual_value"] = "submit_manual_value"
    value: float = Field(gt=0, allow_inf_nan=False)


class CancelManualEntryCommand(BaseModel):
    """Dismiss the manual entry prompt."""

    command: Literal["cancel_manual_entry"] = "cancel_manual_entry"


class ReconnectCommand(BaseModel):
    """Reconnect to the rig after a dropped connection."""

    command: Literal["reconnect"] = "reconnect"


class DisconnectCommand(BaseModel):
    """Close the rig connection."""

    command: Literal["disconnect"] = "disconnect"


# Discriminated union of all command types
PresenterCommand = Annotated[
    GetStateCommand
    | GetHistoryCommand
    | StartMeasurementCommand
    | SelectStepCommand
    | SubmitManualValueCommand
    | CancelManualEntryCommand
    | ReconnectCommand
    | DisconnectCommand,
    Field(discriminator="command"),
]

_command_adapter: TypeAdapter[PresenterCommand] = TypeAdapter(PresenterCommand)


def parse_command(data: dict[str, Any]) -> PresenterCommand:
    """Parse and validate a command from raw dict data.

    Args:
        data: Raw dict from the presenter (e.g., from JSON)

    Returns:
        Validated PresenterCommand instance

    Raises:
        InvalidPayloadError: If the command is malformed or has invalid payload
        UnknownCommandError: If the command type is not recognized
    """
    if "command" not in data:
        raise InvalidPayloadError.for_command("unknown", "missing 'command' field")

    command_name = data.get("command", "")

    try:
        return _command_adapter.validate_python(data)
    except ValidationError as e:
        if any(error["type"] == "union_tag_invalid" for error in e.errors()):
            raise UnknownCommandError.for_command(str(command_name)) from e
        raise InvalidPayloadError.for_command(str(command_name), str(e)) from e


def handle_command(session: MeasurementSession, cmd: PresenterCommand) -> dict[str, Any] | None:  # noqa: PLR0911
    """Apply a command to the session.

    State changes reach the presenter through the session's event stream, so only
    queries and rejected selections produce a direct response.

    Args:
        session: The measurement session the presenter controls.
        cmd: The validated command object.

    Returns:
        Response dict, or None when the event stream already covers the outcome.
    """
    match cmd:
        case GetStateCommand():
            return SessionEvent(SessionEventType.STATE, session.snapshot().model_dump(mode="json", by_alias=True)).to_json()

        case GetHistoryCommand():
            return {"event": "history", "data": [record.to_public() for record in session.history]}

        case StartMeasurementCommand():
            session.start_measurement()
            return None

        case SelectStepCommand(step=step):
            if not session.select_step(step):
                return {"event": "step_unavailable", "data": {"step": step}}
            return None

        case SubmitManualValueCommand(value=value):
            session.submit_manual_value(value)
            return None

        case CancelManualEntryCommand():
            session.cancel_manual_entry()
            return None

        case ReconnectCommand():
            session.reconnect()
            return None

        case DisconnectCommand():
            session.disconnect()
            return None
