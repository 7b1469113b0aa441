# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

"""Unit Tests - Command line interface."""

import json

import pytest
from click.testing import CliRunner

from bodyrig.cli import cli
from bodyrig.settings import get_settings


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


class TestCli:
    def test_identity_is_created_and_reused(self, data_dir):
        runner = CliRunner()

        first = runner.invoke(cli, ["--log-level", "warning", "identity"])
        second = runner.invoke(cli, ["--log-level", "warning", "identity"])

        assert first.exit_code == 0
        assert first.stdout.strip().startswith("webapp_")
        assert first.stdout == second.stdout
        stored = json.loads((data_dir / "client_identity.json").read_text())
        assert stored["client_id"] == first.stdout.strip()

    def test_help_lists_commands(self):
        result = CliRunner().invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("serve", "simulate", "identity"):
            assert command in result.output
