# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

from abc import ABC, abstractmethod
from typing import Any

import httpx
from loguru import logger

from bodyrig.exceptions import PersistenceFailureError
from bodyrig.schemas.measurement import FinalizedMeasurement


class MeasurementPersistence(ABC):
    """Remote store for finalized measurements."""

    @abstractmethod
    async def submit(self, record: FinalizedMeasurement) -> bool:
        """Store a measurement. Best effort: failures are logged and reported as False, never raised."""

    @abstractmethod
    async def fetch_history(self) -> list[dict[str, Any]]:
        """Load stored measurements, most recent first."""

    async def aclose(self) -> None:  # noqa: B027
        """Release client resources."""


class NullMeasurementPersistence(MeasurementPersistence):
    """Keeps measurements local only. Used when no user is configured."""

    async def submit(self, record: FinalizedMeasurement) -> bool:
        logger.debug(f"No persistence configured, measurement {record.id} kept locally")
        return True

    async def fetch_history(self) -> list[dict[str, Any]]:
        return []


class HttpMeasurementPersistence(MeasurementPersistence):
    """
    Persistence over the measurement HTTP API.

    Records are posted to ``<base_url>/measurements`` keyed by ``user_id``. Unset
    fields are left out of the payload so the server applies its own defaults.
    """

    def __init__(
        self,
        base_url: str,
        user_id: str,
        timeout_s: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.user_id = user_id
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout_s, transport=transport)

    def build_payload(self, record: FinalizedMeasurement) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            **record.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"id", "date", "time"}),
        }

    async def submit(self, record: FinalizedMeasurement) -> bool:
        try:
            response = await self._client.post("/measurements", json=self.build_payload(record))
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error = PersistenceFailureError(f"server answered {e.response.status_code}")
            logger.error(f"{error.message} (measurement {record.id}, user {self.user_id})")
            return False
        except httpx.HTTPError as e:
            error = PersistenceFailureError(str(e) or type(e).__name__)
            logger.error(f"{error.message} (measurement {record.id}, user {self.user_id})")
            return False

        logger.info(f"Measurement {record.id} saved for user {self.user_id}")
        return True

    async def fetch_history(self) -> list[dict[str, Any]]:
        """
        Load the user's stored measurements.

        Raises:
            PersistenceFailureError: If the server cannot be reached or answers with an error.
        """
        try:
            response = await self._client.get(f"/measurements/{self.user_id}")
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PersistenceFailureError(f"history request answered {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise PersistenceFailureError(str(e) or type(e).__name__) from e
        return response.json()

    async def aclose(self) -> None:
        await self._client.aclose()
