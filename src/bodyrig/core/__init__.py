# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

from .lifecycle import build_persistence, lifespan

__all__ = ["build_persistence", "lifespan"]
