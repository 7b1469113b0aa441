# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

"""Unit Tests - Device and measurement HTTP/WebSocket API."""

import socket

import pytest
from fastapi.testclient import TestClient

from bodyrig.api.dependencies import is_valid_device_address
from bodyrig.main import create_app
from bodyrig.settings import get_settings


def _free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setenv("DEVICE_PORT", str(_free_port()))
    monkeypatch.delenv("USER_ID", raising=False)
    get_settings.cache_clear()
    with TestClient(create_app()) as test_client:
        yield test_client
    get_settings.cache_clear()


class TestDeviceAddress:
    @pytest.mark.parametrize("address", ["192.168.0.140", "rig.local", "rig-01", "::1"])
    def test_valid(self, address):
        assert is_valid_device_address(address)

    @pytest.mark.parametrize("address", ["bad_addr", "-rig", "", "rig..local"])
    def test_invalid(self, address):
        assert not is_valid_device_address(address)


class TestDevicesApi:
    """Tests for the device session endpoints."""

    def test_startup_creates_client_identity(self, client, tmp_path):
        assert (tmp_path / "client_identity.json").exists()
        assert client.app.state.client_id.startswith("webapp_")

    def test_list_sessions_empty(self, client):
        response = client.get("/api/devices")

        assert response.status_code == 200
        assert response.json() == {"total_sessions": 0, "max_sessions": 4, "sessions": {}}

    def test_state_of_unknown_session(self, client):
        response = client.get("/api/devices/192.168.0.140/state")

        assert response.status_code == 404
        assert response.json()["error_code"] == "session_not_found"

    def test_invalid_address(self, client):
        response = client.get("/api/devices/bad_addr/history")
        assert response.status_code == 400

    def test_ws_endpoint_requires_upgrade(self, client):
        assert client.get("/api/devices/192.168.0.140/ws").status_code == 426

    def test_stored_history_without_user(self, client):
        response = client.get("/api/measurements/history")

        assert response.status_code == 200
        assert response.json() == []

    def test_ws_rejects_invalid_address(self, client):
        with client.websocket_connect("/api/devices/bad_addr/ws") as websocket:
            message = websocket.receive_json()

        assert message["event"] == "error"
        assert message["data"]["error_code"] == "invalid_address"

    def test_ws_single_presenter_per_device(self, client):
        """A second presenter for the same rig is turned away."""
        with client.websocket_connect("/api/devices/127.0.0.1/ws") as first:
            assert first.receive_json()["event"] == "status"

            session_state = client.get("/api/devices/127.0.0.1/state")
            assert session_state.status_code == 200
            assert session_state.json()["address"] == "127.0.0.1"

            with client.websocket_connect("/api/devices/127.0.0.1/ws") as second:
                message = second.receive_json()

            assert message["data"]["error_code"] == "session_in_use"
