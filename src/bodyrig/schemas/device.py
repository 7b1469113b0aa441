# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

"""Wire messages exchanged with the measurement rig."""

import json
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from bodyrig.exceptions import MalformedMessageError

START_MEASUREMENT = "START_MEASUREMENT"


class ClientConnectedMessage(BaseModel):
    """Handshake announcing an operator client to the rig."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["UI_CLIENT_CONNECTED"] = "UI_CLIENT_CONNECTED"
    client_id: str = Field(alias="clientId")

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True)


class _DataMessage(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def empty_data(cls, v: Any) -> Any:
        return {} if v is None else v


class LiveMeasurementMessage(_DataMessage):
    """Partial reading streamed while a step runs."""

    type: Literal["live_measurement"] = "live_measurement"


class DoneMessage(_DataMessage):
    """Final reading of a completed step."""

    type: Literal["done"] = "done"


DeviceMessage = Annotated[LiveMeasurementMessage | DoneMessage, Field(discriminator="type")]

_device_message_adapter: TypeAdapter[DeviceMessage] = TypeAdapter(DeviceMessage)


def decode_envelope(raw: str | bytes) -> dict[str, Any]:
    """
    Decode a raw inbound frame into a JSON object.

    Raises:
        MalformedMessageError: If the frame is not a JSON object (e.g. a plain-text keepalive).
    """
    try:
        envelope = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedMessageError(str(e)) from e
    if not isinstance(envelope, dict):
        raise MalformedMessageError(f"expected an object, got {type(envelope).__name__}")
    return envelope


def parse_device_message(envelope: dict[str, Any]) -> LiveMeasurementMessage | DoneMessage | None:
    """
    Validate a decoded envelope against the messages the session acts on.

    Returns:
        The typed message, or None for envelope types the session does not handle.

    Raises:
        MalformedMessageError: If a known message type carries an invalid payload.
    """
    if envelope.get("type") not in ("live_measurement", "done"):
        return None
    try:
        return _device_message_adapter.validate_python(envelope)
    except ValidationError as e:
        raise MalformedMessageError(str(e)) from e
