# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

from typing import Any

from fastapi import APIRouter

from bodyrig.api.dependencies import PersistenceDep

router = APIRouter(prefix="/api/measurements", tags=["Measurements"])


@router.get("/history", summary="Stored measurements of the configured user")
async def get_stored_history(persistence: PersistenceDep) -> list[dict[str, Any]]:
    """Measurement history kept by the persistence service, most recent first."""
    return await persistence.fetch_history()
