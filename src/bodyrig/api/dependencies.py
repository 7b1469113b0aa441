# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

import ipaddress
import re
from typing import Annotated

from fastapi import Depends, Request, WebSocket, status
from fastapi.exceptions import HTTPException

from bodyrig.services.persistence import MeasurementPersistence
from bodyrig.workers.session_registry import SessionRegistry

_HOSTNAME_PATTERN = re.compile(r"^(?=.{1,253}$)[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?(\.[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*$")


def is_valid_device_address(address: str) -> bool:
    """
    Check if a given string is an IP address or a host name.

    :param address: String to check
    :return: True if the address can be dialled, False otherwise
    """
    try:
        ipaddress.ip_address(address)
    except ValueError:
        return bool(_HOSTNAME_PATTERN.match(address))
    return True


def get_device_address(address: str) -> str:
    """Validate the device address path parameter."""
    if not is_valid_device_address(address):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid device address")
    return address


def get_registry(request: Request) -> SessionRegistry:
    """Provide the global SessionRegistry instance."""
    return request.app.state.registry


def get_registry_ws(websocket: WebSocket) -> SessionRegistry:
    """Provide the global SessionRegistry instance for WebSocket."""
    return websocket.app.state.registry


def get_persistence(request: Request) -> MeasurementPersistence:
    """Provide the measurement persistence client."""
    return request.app.state.persistence


DeviceAddress = Annotated[str, Depends(get_device_address)]
RegistryDep = Annotated[SessionRegistry, Depends(get_registry)]
RegistryWsDep = Annotated[SessionRegistry, Depends(get_registry_ws)]
PersistenceDep = Annotated[MeasurementPersistence, Depends(get_persistence)]
