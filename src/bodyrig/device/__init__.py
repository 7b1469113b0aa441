# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

from .channel import ChannelListener, ChannelState, DeviceChannel
from .client_identity import ClientIdentityStore
from .field_mapper import FIELD_TABLE, to_internal, to_wire
from .websocket_channel import WebSocketDeviceChannel

__all__ = [
    "FIELD_TABLE",
    "ChannelListener",
    "ChannelState",
    "ClientIdentityStore",
    "DeviceChannel",
    "WebSocketDeviceChannel",
    "to_internal",
    "to_wire",
]
