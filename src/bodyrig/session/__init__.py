# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

from .alarms import AlarmScheduler, AsyncioAlarmScheduler, SessionAlarms
from .events import SessionEvent, SessionEventType
from .manager import MeasurementSession

__all__ = [
    "AlarmScheduler",
    "AsyncioAlarmScheduler",
    "MeasurementSession",
    "SessionAlarms",
    "SessionEvent",
    "SessionEventType",
]
