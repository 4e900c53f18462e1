"""
openclaw.json loading and saving.

The file is hand-editable JSON5 (comments, trailing commas, unquoted keys).
It is read with the json5 parser first and plain json as a fallback, and
always written back as pretty-printed JSON.

Two load paths:
  load_raw()  - the document as stored; the only thing ever mutated and saved
  load()      - raw + ${VAR} substitution, for read-only views
"""

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import json5

from atomic_io import atomic_write_text, path_lock
from config_errors import ConfigIOError, ConfigParseError
from env_file import read_env_file
from settings import Settings
from substitution import substitute_config_vars

# Network settings a partial save must never drop
GATEWAY_CRITICAL_FIELDS = ("port", "bind", "trustedProxies", "reload")


def parse_config_text(content: str) -> dict:
    """Parse config text as JSON5, falling back to strict JSON."""
    if not content.strip():
        return {}
    try:
        value = json5.loads(content)
    except ValueError as json5_err:
        try:
            value = json.loads(content)
        except ValueError as json_err:
            raise ConfigParseError(str(json5_err), str(json_err)) from json_err

    if not isinstance(value, dict):
        raise ConfigParseError(
            f"top-level value is {type(value).__name__}, expected an object",
            "top-level value must be an object",
        )
    return value


def serialize_config(config: dict) -> str:
    return json.dumps(config, indent=2, ensure_ascii=False) + "\n"


def merge_gateway_critical_fields(target: dict, source: dict):
    """Copy gateway network fields from source into target where target lacks them."""
    source_gateway = source.get("gateway")
    if not isinstance(source_gateway, dict):
        return

    present = [f for f in GATEWAY_CRITICAL_FIELDS if f in source_gateway]
    if not present:
        return

    target_gateway = target.get("gateway")
    if target_gateway is None:
        target_gateway = target["gateway"] = {}
    if not isinstance(target_gateway, dict):
        return

    for field in present:
        if field not in target_gateway:
            target_gateway[field] = source_gateway[field]


def ensure_object(parent: dict, key: str) -> dict:
    """Return parent[key], replacing a missing or non-object value with {}."""
    value = parent.get(key)
    if not isinstance(value, dict):
        value = parent[key] = {}
    return value


def get_path(config: Any, *keys: str, default: Any = None) -> Any:
    """Walk nested objects by key, returning default on any miss."""
    node = config
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node


class ConfigStore:
    """The openclaw.json document plus its companion env file."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def config_path(self) -> Path:
        return self.settings.config_path

    @property
    def env_path(self) -> Path:
        return self.settings.env_path

    def _read_text(self) -> Optional[str]:
        try:
            return self.config_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise ConfigIOError("read", self.config_path, e) from e

    def load_raw(self) -> dict:
        """Load the stored document without substitution. Missing file is {}."""
        content = self._read_text()
        if content is None:
            return {}
        return parse_config_text(content)

    def env_vars(self) -> dict[str, str]:
        """Re-read the env file. Never cached, so CLI edits show up immediately."""
        return read_env_file(self.env_path)

    def load(self) -> dict:
        """Load the document with ${VAR} references resolved."""
        return substitute_config_vars(self.load_raw(), self.env_vars())

    def save(self, config: dict, preserve_gateway: bool = True):
        """Write the whole document, keeping gateway network fields from disk."""
        with path_lock(self.config_path):
            if preserve_gateway:
                try:
                    existing = self.load_raw()
                except ConfigParseError:
                    existing = {}
                merge_gateway_critical_fields(config, existing)
            atomic_write_text(self.config_path, serialize_config(config))

    @contextmanager
    def transaction(self) -> Iterator[dict]:
        """Load raw, let the caller mutate, save. Nothing is written if the block raises."""
        with path_lock(self.config_path):
            config = self.load_raw()
            yield config
            self.save(config)
