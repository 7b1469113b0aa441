# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

from .websocket_transport import WebSocketTransport
from .worker_transport import WorkerTransport

__all__ = ["WebSocketTransport", "WorkerTransport"]
