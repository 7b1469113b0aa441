# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

from .measurement.presenter_worker import MeasurementPresenterWorker
from .session_registry import SessionRegistry

__all__ = ["MeasurementPresenterWorker", "SessionRegistry"]
