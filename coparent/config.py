"""Client configuration.

Loads settings from coparent_config.json on disk and environment variables.
"""

from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path

_DEFAULT_SERVER = "http://localhost:3000"
_DEFAULT_API_PREFIX = ""
_TIMEOUT = 30.0  # seconds
_CONNECT_TIMEOUT = 10.0  # seconds
_INVITE_SHEET_DELAY = 0.3  # seconds between closing one sheet and opening the next
_TOKEN_EXPIRY_SKEW = 30  # seconds


def _config_dir() -> Path:
    """Return the directory that stores persistent client configuration."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    else:
        base = Path.home() / ".config"
    d = base / "coparent"
    d.mkdir(parents=True, exist_ok=True)
    return d


@dataclass
class ClientConfig:
    """Runtime configuration for the co-parent client."""

    server_url: str = _DEFAULT_SERVER
    api_prefix: str = _DEFAULT_API_PREFIX
    access_token: str = ""
    timeout: float = _TIMEOUT
    connect_timeout: float = _CONNECT_TIMEOUT
    invite_sheet_delay: float = _INVITE_SHEET_DELAY
    token_expiry_skew: int = _TOKEN_EXPIRY_SKEW

    @property
    def api_base(self) -> str:
        return f"{self.server_url.rstrip('/')}{self.api_prefix}"

    @property
    def has_token(self) -> bool:
        return bool(self.access_token)

    # -- Persistence ----------------------------------------------------------

    @classmethod
    def load(cls) -> ClientConfig:
        """Load config from disk, falling back to defaults + env vars."""
        cfg = cls()
        path = _config_dir() / "coparent_config.json"

        if path.exists():
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            for key, val in data.items():
                if hasattr(cfg, key):
                    setattr(cfg, key, val)

        # Environment overrides
        if env := os.environ.get("COPARENT_SERVER_URL"):
            cfg.server_url = env
        if env := os.environ.get("COPARENT_API_PREFIX"):
            cfg.api_prefix = env
        if env := os.environ.get("COPARENT_ACCESS_TOKEN"):
            cfg.access_token = env

        return cfg

    def save(self) -> None:
        """Persist current config to disk.

        The access token is never written; it only lives in the environment.
        """
        path = _config_dir() / "coparent_config.json"
        data = {
            "server_url": self.server_url,
            "api_prefix": self.api_prefix,
            "timeout": self.timeout,
            "connect_timeout": self.connect_timeout,
            "invite_sheet_delay": self.invite_sheet_delay,
            "token_expiry_skew": self.token_expiry_skew,
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
