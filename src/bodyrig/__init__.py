# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

"""bodyrig package."""

__version__ = "0.1.0"
