# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

from .device import START_MEASUREMENT, ClientConnectedMessage, DoneMessage, LiveMeasurementMessage
from .measurement import STEP_LABELS, FinalizedMeasurement, LiveTelemetry, MeasurementStep
from .session import ConnectionState, SessionPhase, SessionSnapshot

__all__ = [
    "START_MEASUREMENT",
    "STEP_LABELS",
    "ClientConnectedMessage",
    "ConnectionState",
    "DoneMessage",
    "FinalizedMeasurement",
    "LiveMeasurementMessage",
    "LiveTelemetry",
    "MeasurementStep",
    "SessionPhase",
    "SessionSnapshot",
]
