# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

import datetime as dt
from enum import IntEnum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_serializer
from pydantic.alias_generators import to_camel

from bodyrig.exceptions import UnknownStepError


class MeasurementStep(IntEnum):
    """Measurement steps of the rig, valued by their protocol code."""

    NAME_AND_AGE = 0
    CROWN_HEIGHT = 1
    SHOULDER_HEIGHT = 2
    ELBOW_REACH = 3
    HIP_HEIGHT = 4
    HAND_REACH = 5
    KNEE_HEIGHT = 6
    ANKLE_HEIGHT = 7

    @property
    def label(self) -> str:
        return STEP_LABELS[self]

    @property
    def is_manual(self) -> bool:
        """Manual steps are entered by the operator and never sent to the device."""
        return self is MeasurementStep.ANKLE_HEIGHT

    @property
    def command(self) -> str:
        """Device command payload for this step."""
        if self.is_manual:
            raise ValueError(f"{self.label} has no device command")
        return str(int(self))

    @classmethod
    def from_code(cls, code: Any) -> "MeasurementStep":
        """
        Resolve a step from a protocol code.

        Raises:
            UnknownStepError: If the code is not in the catalogue.
        """
        if isinstance(code, bool) or (isinstance(code, float) and not code.is_integer()):
            raise UnknownStepError(code)
        try:
            return cls(int(code))
        except (TypeError, ValueError) as e:
            raise UnknownStepError(code) from e


STEP_LABELS: dict[MeasurementStep, str] = {
    MeasurementStep.NAME_AND_AGE: "Name & Age",
    MeasurementStep.CROWN_HEIGHT: "Crown Height",
    MeasurementStep.SHOULDER_HEIGHT: "Shoulder Height",
    MeasurementStep.ELBOW_REACH: "Elbow Reach",
    MeasurementStep.HIP_HEIGHT: "Hip Height",
    MeasurementStep.HAND_REACH: "Hand Reach",
    MeasurementStep.KNEE_HEIGHT: "Knee Height",
    MeasurementStep.ANKLE_HEIGHT: "Ankle Height (manual)",
}


# Readings expected to be numbers (cm, kg, years)
NUMERIC_READINGS = (
    "age",
    "weight",
    "crown_height",
    "shoulder_height",
    "elbow_reach",
    "hip_height",
    "hand_reach",
    "knee_height",
    "ankle_height",
)


class LiveTelemetry(BaseModel):
    """In-progress reading pushed by the device while a step runs. Never persisted."""

    values: dict[str, Any] = Field(default_factory=dict, description="Field-mapped partial measurement")
    step: MeasurementStep | None = Field(default=None, description="Step that was active on receipt")
    received_at: dt.datetime


class FinalizedMeasurement(BaseModel):
    """
    Immutable measurement record produced by a completed step or a manual entry.

    Fields use the internal camelCase names on the wire (``model_dump(by_alias=True)``).
    Fields the device did not report stay unset. Unknown device fields are kept.
    Device readings are stored as reported, even when a value is not the expected
    number, so a completed step is never discarded.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="allow",
        json_schema_extra={
            "example": {
                "id": "0b7c3f7e-5a4e-4f4a-9f7b-6f1f0e8a2d11",
                "date": "2025-06-01",
                "time": "14:03:22",
                "shoulderHeight": 142.0,
            }
        },
    )

    id: UUID = Field(default_factory=uuid4)
    date: dt.date
    time: dt.time
    name: JsonValue = None
    age: JsonValue = None
    weight: JsonValue = None
    crown_height: JsonValue = None
    shoulder_height: JsonValue = None
    elbow_reach: JsonValue = None
    hip_height: JsonValue = None
    hand_reach: JsonValue = None
    knee_height: JsonValue = None
    ankle_height: JsonValue = None

    @field_serializer("id")
    def serialize_id(self, value: UUID) -> str:
        return str(value)

    def to_public(self) -> dict[str, Any]:
        """Presenter view: internal field names, unset fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def non_numeric_readings(self) -> dict[str, Any]:
        """Readings that are set but are not numbers, keyed by internal name."""
        readings = {}
        for name in NUMERIC_READINGS:
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int | float)):
                readings[to_camel(name)] = value
        return readings
