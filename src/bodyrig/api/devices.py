# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

from typing import Any

from fastapi import APIRouter, WebSocket, status
from fastapi.responses import Response
from loguru import logger

from bodyrig.api.dependencies import DeviceAddress, RegistryDep, RegistryWsDep, is_valid_device_address
from bodyrig.exceptions import BodyRigBaseException
from bodyrig.schemas.session import SessionSnapshot
from bodyrig.workers.measurement.presenter_worker import MeasurementPresenterWorker
from bodyrig.workers.transport.websocket_transport import WebSocketTransport

router = APIRouter(prefix="/api/devices", tags=["Devices"])


@router.get("", summary="List active device sessions")
async def list_sessions(registry: RegistryDep) -> dict:
    return registry.get_status_summary()


@router.get("/{address}/state", summary="Current session state", response_model_by_alias=True)
async def get_session_state(address: DeviceAddress, registry: RegistryDep) -> SessionSnapshot:
    return registry.get(address).snapshot()


@router.get("/{address}/history", summary="Measurements finalized in this session")
async def get_session_history(address: DeviceAddress, registry: RegistryDep) -> list[dict[str, Any]]:
    return [record.to_public() for record in registry.get(address).history]


@router.get("/{address}/ws", tags=["WebSocket"], summary="Measurement control (WebSocket)", status_code=426)
async def device_websocket_openapi(address: str) -> Response:  # noqa: ARG001
    """This endpoint requires a WebSocket connection. Use `ws://` to connect."""
    return Response(status_code=426)


@router.websocket("/{address}/ws")
async def device_websocket(address: str, websocket: WebSocket, registry: RegistryWsDep) -> None:
    """
    Control a measurement session over a WebSocket.

    The session is created and connected to the rig at ``address`` when the presenter
    attaches, and closed when it goes away. Only one presenter may control a rig.

    Args:
        address: Network address of the rig.
        websocket: The FastAPI WebSocket instance.
        registry: Registry of active measurement sessions.
    """
    await websocket.accept()

    if not is_valid_device_address(address):
        await websocket.send_json({"event": "error", "data": {"error_code": "invalid_address", "message": address}})
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        session = await registry.acquire(address)
    except BodyRigBaseException as e:
        logger.error(f"Failed to open session for {address}: {e.message}")
        try:
            await websocket.send_json({"event": "error", "data": {"error_code": e.error_code, "message": e.message}})
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        except Exception as close_err:
            logger.error(f"Could not close websocket after rejected session: {close_err}")
        return

    try:
        worker = MeasurementPresenterWorker(address, session, WebSocketTransport(websocket))
        await worker.run()
    except Exception as e:
        logger.exception(f"Unexpected error in device websocket: {e}")
        try:
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        except Exception as close_err:
            logger.error(f"Could not close websocket after Exception: {close_err}")
    finally:
        await registry.release(address)
