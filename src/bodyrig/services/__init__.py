# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

from .persistence import HttpMeasurementPersistence, MeasurementPersistence, NullMeasurementPersistence

__all__ = ["HttpMeasurementPersistence", "MeasurementPersistence", "NullMeasurementPersistence"]
