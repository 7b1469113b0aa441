# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from bodyrig.device.client_identity import ClientIdentityStore
from bodyrig.device.websocket_channel import WebSocketDeviceChannel
from bodyrig.services.persistence import (
    HttpMeasurementPersistence,
    MeasurementPersistence,
    NullMeasurementPersistence,
)
from bodyrig.session.manager import MeasurementSession
from bodyrig.settings import Settings, get_settings
from bodyrig.workers.session_registry import SessionRegistry


def build_persistence(settings: Settings) -> MeasurementPersistence:
    """Persistence over HTTP when a user is configured, local-only otherwise."""
    if settings.user_id is None:
        logger.warning("USER_ID is not set, finalized measurements are kept locally only")
        return NullMeasurementPersistence()
    return HttpMeasurementPersistence(
        base_url=settings.persistence_base_url,
        user_id=settings.user_id,
        timeout_s=settings.persistence_timeout_s,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """FastAPI lifespan context manager"""
    # Startup
    settings = get_settings()
    app.state.settings = settings
    logger.info(f"Starting {settings.app_name} application...")

    client_id = ClientIdentityStore(settings.client_identity_path).get_or_create()
    persistence = build_persistence(settings)

    def session_factory() -> MeasurementSession:
        return MeasurementSession(
            WebSocketDeviceChannel(port=settings.device_port),
            persistence,
            client_id,
            measuring_timeout_s=settings.measuring_timeout_s,
            selection_unlock_s=settings.selection_unlock_s,
        )

    registry = SessionRegistry(
        session_factory,
        max_sessions=settings.max_sessions,
        shutdown_timeout_s=settings.shutdown_timeout_s,
    )
    app.state.client_id = client_id
    app.state.persistence = persistence
    app.state.registry = registry
    logger.info(f"Application startup completed, client identity {client_id}")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name} application...")
    await registry.shutdown_all()
    await persistence.aclose()
    logger.info("Application shutdown completed")
