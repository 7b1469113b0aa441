# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

import json
import random
import re
from pathlib import Path

from loguru import logger

CLIENT_ID_PATTERN = re.compile(r"^webapp_\d{1,5}$")


class ClientIdentityStore:
    """
    Stable identifier that lets the rig tell concurrent operator clients apart.

    The id is generated lazily on first use and persisted as JSON, so it survives
    restarts. A stored id is only replaced when it is missing or malformed.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._client_id: str | None = None

    @staticmethod
    def generate() -> str:
        return f"webapp_{random.randrange(100000)}"  # noqa: S311

    def get_or_create(self) -> str:
        if self._client_id is not None:
            return self._client_id

        client_id = self._load()
        if client_id is None:
            client_id = self.generate()
            self._save(client_id)
            logger.info(f"Generated new client identity {client_id}")

        self._client_id = client_id
        return client_id

    def _load(self) -> str | None:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable client identity file {self.path}: {e}")
            return None

        client_id = data.get("client_id") if isinstance(data, dict) else None
        if not isinstance(client_id, str) or not CLIENT_ID_PATTERN.match(client_id):
            logger.warning(f"Ignoring invalid client identity in {self.path}")
            return None
        return client_id

    def _save(self, client_id: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"client_id": client_id}), encoding="utf-8")
