"""Shared fixtures for mgzon CLI tests."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from mgzon.cli.platform.types import CliConfig


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config store at a temp file and clear MGZON_* variables."""
    for name in ("MGZON_API_KEY", "MGZON_API_URL", "MGZON_DEBUG"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("MGZON_NO_UPDATE_CHECK", "1")
    config_file = tmp_path / ".mgzon" / "config.json"
    with patch("mgzon.cli.platform.auth.CONFIG_FILE", config_file):
        yield config_file


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def logged_in():
    """Skip the authentication gate on platform commands."""
    config = CliConfig(api_key="mz_test_key_123456", email="dev@example.com")
    with patch("mgzon.cli.session.ensure_authenticated", return_value=config):
        yield config
