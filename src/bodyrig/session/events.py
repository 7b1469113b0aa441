# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class SessionEventType(StrEnum):
    STATE = "state"
    LIVE_MEASUREMENT = "live_measurement"
    MEASUREMENT_FINALIZED = "measurement_finalized"
    ERROR = "error"


@dataclass(frozen=True)
class SessionEvent:
    """Notification pushed from a session to its presenters."""

    type: SessionEventType
    data: dict[str, Any] | None = None

    def to_json(self) -> dict:
        return {
            "event": self.type.value,
            "data": self.data,
        }
