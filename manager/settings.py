"""
Runtime settings for the manager.

All paths are resolved from environment variables once, at startup, and the
resulting Settings object is handed to everything that touches disk.
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

DEFAULT_WEB_PORT = 17890
DEFAULT_GATEWAY_PORT = 18789
SESSION_TTL_SECONDS = 60 * 60 * 8


def default_config_dir() -> Path:
    """~/.openclaw on every platform."""
    return Path.home() / ".openclaw"


def _env_flag(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value == "1" or value.lower() == "true"


class Settings(BaseModel):
    config_dir: Path
    config_path: Path
    env_path: Path
    auth_path: Path
    audit_log: Path
    static_dir: Path
    host: str = "0.0.0.0"
    port: int = DEFAULT_WEB_PORT
    cookie_secure: bool = False
    session_ttl: int = SESSION_TTL_SECONDS
    openclaw_bin: Optional[str] = None

    @classmethod
    def for_dir(cls, config_dir: Path, **overrides) -> "Settings":
        """Settings with every file living under config_dir."""
        config_dir = Path(config_dir)
        values = {
            "config_dir": config_dir,
            "config_path": config_dir / "openclaw.json",
            "env_path": config_dir / "env",
            "auth_path": config_dir / "manager-web-auth.json",
            "audit_log": config_dir / "manager-audit.jsonl",
            "static_dir": Path("dist"),
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from OPENCLAW_* environment variables."""
        config_dir = Path(os.environ.get("OPENCLAW_HOME", str(default_config_dir())))
        overrides = {}
        if os.environ.get("OPENCLAW_CONFIG_PATH"):
            overrides["config_path"] = Path(os.environ["OPENCLAW_CONFIG_PATH"])
        if os.environ.get("OPENCLAW_ENV_PATH"):
            overrides["env_path"] = Path(os.environ["OPENCLAW_ENV_PATH"])
        if os.environ.get("OPENCLAW_MANAGER_AUTH_PATH"):
            overrides["auth_path"] = Path(os.environ["OPENCLAW_MANAGER_AUTH_PATH"])
        if os.environ.get("OPENCLAW_MANAGER_AUDIT_LOG"):
            overrides["audit_log"] = Path(os.environ["OPENCLAW_MANAGER_AUDIT_LOG"])
        if os.environ.get("OPENCLAW_WEB_STATIC_DIR"):
            overrides["static_dir"] = Path(os.environ["OPENCLAW_WEB_STATIC_DIR"])

        port = DEFAULT_WEB_PORT
        try:
            port = int(os.environ.get("OPENCLAW_WEB_PORT", DEFAULT_WEB_PORT))
        except ValueError:
            pass

        return cls.for_dir(
            config_dir,
            host=os.environ.get("OPENCLAW_WEB_HOST", "0.0.0.0"),
            port=port,
            cookie_secure=_env_flag(os.environ.get("OPENCLAW_WEB_COOKIE_SECURE")),
            openclaw_bin=os.environ.get("OPENCLAW_BIN") or None,
            **overrides,
        )
