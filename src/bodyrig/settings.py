# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

"""Application configuration management"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore")

    # Application
    app_name: str = "Body Rig"
    version: str = "0.1.0"
    summary: str = "Body measurement rig session server"
    description: str = (
        "Body Rig drives a networked body-measurement rig. "
        "It sequences measurement steps, streams live readings and stores finalized measurements."
    )
    openapi_url: str = "/api/openapi.json"
    debug: bool = Field(default=False, alias="DEBUG")
    environment: Literal["dev", "prod"] = "dev"
    data_dir: Path = Field(default=Path("data"), alias="DATA_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")  # noqa: S104
    port: int = Field(default=7860, alias="PORT")

    # Device
    device_port: int = Field(default=81, alias="DEVICE_PORT")
    measuring_timeout_s: float = Field(default=30.0, gt=0, description="Seconds before an open measuring window closes")
    selection_unlock_s: float = Field(default=2.0, ge=0, description="Device startup latency before steps can be selected")
    client_identity_file: str = Field(default="client_identity.json", alias="CLIENT_IDENTITY_FILE")

    # Sessions
    max_sessions: int = Field(default=4, alias="MAX_SESSIONS")
    shutdown_timeout_s: float = 10.0

    # Persistence collaborator
    persistence_base_url: str = Field(default="http://127.0.0.1:5000/api", alias="PERSISTENCE_BASE_URL")
    persistence_timeout_s: float = Field(default=5.0, alias="PERSISTENCE_TIMEOUT_S")
    user_id: str | None = Field(default=None, alias="USER_ID")

    @property
    def client_identity_path(self) -> Path:
        """Get the file holding the persisted client identity"""
        return self.data_dir / self.client_identity_file


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings"""
    return Settings()
