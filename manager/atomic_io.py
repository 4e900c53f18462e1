"""
Whole-file writes and per-file locks.

Files are written to a temp file next to the target and moved into place
with os.replace, so readers never see a half-written document.
"""

import os
import tempfile
import threading
from pathlib import Path

from config_errors import ConfigIOError

_locks: dict[str, threading.RLock] = {}
_locks_guard = threading.Lock()


def path_lock(path: Path) -> threading.RLock:
    """Return the process-wide lock guarding read-modify-write of path."""
    key = str(Path(path).resolve())
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = threading.RLock()
            _locks[key] = lock
        return lock


def atomic_write_text(path: Path, content: str):
    """Replace path with content in one step."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    except OSError as e:
        raise ConfigIOError("write", path, e) from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        if path.exists():
            os.chmod(tmp, path.stat().st_mode & 0o777)
        os.replace(tmp, path)
    except OSError as e:
        raise ConfigIOError("write", path, e) from e
    finally:
        if os.path.exists(tmp):
            try:
                os.remove(tmp)
            except OSError:
                pass
