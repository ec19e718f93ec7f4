"""Tests for coparent.config."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from coparent.config import ClientConfig


def test_default_config(tmp_config_dir: Path) -> None:
    """Default values are set correctly."""
    cfg = ClientConfig()
    assert cfg.server_url == "http://localhost:3000"
    assert cfg.api_prefix == ""
    assert cfg.access_token == ""
    assert cfg.timeout == 30.0
    assert cfg.invite_sheet_delay == 0.3
    assert cfg.token_expiry_skew == 30


def test_api_base(config: ClientConfig) -> None:
    """api_base combines server_url and api_prefix."""
    assert config.api_base == "http://testserver"

    config.server_url = "https://api.example.com/"
    config.api_prefix = "/api"
    assert config.api_base == "https://api.example.com/api"


def test_has_token(config: ClientConfig) -> None:
    assert config.has_token is False
    config.access_token = "tok_abc"
    assert config.has_token is True


def test_save_and_load(tmp_config_dir: Path) -> None:
    """Roundtrip: save config, load it back, values match."""
    cfg = ClientConfig(server_url="http://example.com", api_prefix="/api", timeout=5.0)
    cfg.save()

    loaded = ClientConfig.load()
    assert loaded.server_url == "http://example.com"
    assert loaded.api_prefix == "/api"
    assert loaded.timeout == 5.0


def test_save_never_writes_token(tmp_config_dir: Path) -> None:
    ClientConfig(access_token="secret").save()

    data = json.loads((tmp_config_dir / "coparent_config.json").read_text())
    assert "access_token" not in data
    assert "secret" not in json.dumps(data)


def test_load_from_file(tmp_config_dir: Path) -> None:
    """Loading reads values from the JSON file on disk; unknown keys are ignored."""
    data = {
        "server_url": "http://test:9000",
        "invite_sheet_delay": 0.5,
        "not_a_setting": True,
    }
    (tmp_config_dir / "coparent_config.json").write_text(json.dumps(data))

    cfg = ClientConfig.load()
    assert cfg.server_url == "http://test:9000"
    assert cfg.invite_sheet_delay == 0.5
    assert not hasattr(cfg, "not_a_setting")


def test_env_override(tmp_config_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment variables override file-based config."""
    ClientConfig(server_url="http://from-file").save()

    monkeypatch.setenv("COPARENT_SERVER_URL", "http://from-env")
    monkeypatch.setenv("COPARENT_API_PREFIX", "/v2")
    monkeypatch.setenv("COPARENT_ACCESS_TOKEN", "env-token")

    loaded = ClientConfig.load()
    assert loaded.server_url == "http://from-env"
    assert loaded.api_base == "http://from-env/v2"
    assert loaded.access_token == "env-token"
