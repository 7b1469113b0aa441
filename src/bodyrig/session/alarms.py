# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

import asyncio
from collections.abc import Callable
from typing import Protocol


class Alarm(Protocol):
    def cancel(self) -> None: ...


class AlarmScheduler(Protocol):
    """Source of one-shot alarms. ``asyncio`` event loops satisfy it through ``call_later``."""

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> Alarm: ...


class AsyncioAlarmScheduler:
    """Alarms on the running event loop."""

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> Alarm:
        return asyncio.get_running_loop().call_later(delay_s, callback)


class SessionAlarms:
    """
    Named, cancellable one-shot alarms owned by a single session.

    Arming a name that is already armed replaces the pending alarm, so at most one
    alarm per name is ever live.
    """

    def __init__(self, scheduler: AlarmScheduler) -> None:
        self._scheduler = scheduler
        self._alarms: dict[str, tuple[object, Alarm]] = {}

    def arm(self, name: str, delay_s: float, callback: Callable[[], None]) -> None:
        self.cancel(name)
        token = object()

        def fire() -> None:
            current = self._alarms.get(name)
            if current is None or current[0] is not token:
                return
            del self._alarms[name]
            callback()

        self._alarms[name] = (token, self._scheduler.call_later(delay_s, fire))

    def cancel(self, name: str) -> None:
        entry = self._alarms.pop(name, None)
        if entry is not None:
            entry[1].cancel()

    def cancel_all(self) -> None:
        for name in list(self._alarms):
            self.cancel(name)

    def is_armed(self, name: str) -> bool:
        return name in self._alarms

    @property
    def armed(self) -> list[str]:
        return list(self._alarms)
