"""
~/.openclaw/env reader/writer.

The env file is shared with the openclaw CLI and edited by hand, so reads are
tolerant and writes only touch the line that defines the key being changed.

Format:
    # comment
    KEY=value
    export OTHER="quoted value"
"""

import re
from pathlib import Path
from typing import Optional

from atomic_io import atomic_write_text, path_lock
from config_errors import ConfigIOError, ConfigValidationError

_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_NEEDS_QUOTES = (" ", "\t", '"', "'", "#")


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def _parse_line(line: str) -> Optional[tuple[str, str]]:
    """Return (key, value) for an assignment line, None for anything else."""
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    if line.startswith("export "):
        line = line[len("export "):]
    if "=" not in line:
        return None
    key, _, val = line.partition("=")
    key = key.strip()
    if not key:
        return None
    return key, _strip_quotes(val.strip())


def _format_value(value: str) -> str:
    if value != value.strip() or any(ch in value for ch in _NEEDS_QUOTES):
        return f'"{value}"'
    return value


def _read_lines(path: Path) -> list[str]:
    if not path.exists():
        return []
    try:
        return path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise ConfigIOError("read", path, e) from e


def _check_key(key: str):
    if not key or not _KEY_RE.match(key):
        raise ConfigValidationError(f"Invalid environment variable name: {key!r}")


def read_env_file(path: Path) -> dict[str, str]:
    """Read a key=value env file into a dict. Missing file reads as empty."""
    result: dict[str, str] = {}
    for line in _read_lines(Path(path)):
        parsed = _parse_line(line)
        if parsed:
            key, val = parsed
            result[key] = val
    return result


def read_env_value(path: Path, key: str) -> Optional[str]:
    """Return a single value from the env file, or None."""
    return read_env_file(path).get(key)


def set_env_value(path: Path, key: str, value: str):
    """Set key=value, rewriting the existing line or appending a new one."""
    _check_key(key)
    if "\n" in value or "\r" in value:
        raise ConfigValidationError(f"Value for {key} must be a single line")
    path = Path(path)
    formatted = _format_value(value)

    with path_lock(path):
        lines = _read_lines(path)
        out = []
        written = False
        for line in lines:
            parsed = _parse_line(line)
            if parsed is None or parsed[0] != key:
                out.append(line)
                continue
            if written:
                # Later duplicates would shadow the new value on read
                continue
            prefix = "export " if line.strip().startswith("export ") else ""
            out.append(f"{prefix}{key}={formatted}")
            written = True

        if not written:
            out.append(f"{key}={formatted}")

        atomic_write_text(path, "\n".join(out) + "\n")


def remove_env_value(path: Path, key: str) -> bool:
    """Drop every line defining key. Returns True if anything was removed."""
    path = Path(path)
    with path_lock(path):
        lines = _read_lines(path)
        out = [line for line in lines if (_parse_line(line) or (None,))[0] != key]
        if len(out) == len(lines):
            return False
        atomic_write_text(path, "\n".join(out) + "\n" if out else "")
        return True
