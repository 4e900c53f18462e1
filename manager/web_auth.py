"""
Admin account and session handling for the web console.

One admin per installation, stored in the auth file:
    {"username": "...", "salt": "<b64>", "password_hash": "<b64>",
     "iterations": 390000, "created_at": "..."}

Sessions live in memory only; restarting the manager logs everyone out.
"""

import base64
import json
import os
import secrets
import threading
import time
from pathlib import Path
from typing import Optional

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from atomic_io import atomic_write_text
from audit import utc_now
from config_errors import ConfigValidationError

SESSION_COOKIE = "openclaw_manager_session"
PBKDF2_ITERATIONS = 390_000
MIN_PASSWORD_LENGTH = 8


def _kdf(salt: bytes, iterations: int) -> PBKDF2HMAC:
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )


def hash_password(password: str, iterations: int = PBKDF2_ITERATIONS) -> dict:
    """Derive a salted PBKDF2-SHA256 hash. Returns the auth file fields."""
    salt = os.urandom(16)
    derived = _kdf(salt, iterations).derive(password.encode("utf-8"))
    return {
        "salt": base64.b64encode(salt).decode(),
        "password_hash": base64.b64encode(derived).decode(),
        "iterations": iterations,
    }


def verify_password(password: str, record: dict) -> bool:
    try:
        salt = base64.b64decode(record["salt"])
        expected = base64.b64decode(record["password_hash"])
        iterations = int(record.get("iterations", PBKDF2_ITERATIONS))
    except (KeyError, TypeError, ValueError):
        return False
    try:
        _kdf(salt, iterations).verify(password.encode("utf-8"), expected)
    except InvalidKey:
        return False
    return True


class AuthManager:
    """Admin credentials on disk plus in-memory session tokens."""

    def __init__(self, auth_path: Path, session_ttl: int, iterations: int = PBKDF2_ITERATIONS):
        self.auth_path = Path(auth_path)
        self.session_ttl = session_ttl
        self.iterations = iterations
        self._sessions: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def load_admin(self) -> Optional[dict]:
        """The stored admin record, or None if setup has not happened."""
        if not self.auth_path.exists():
            return None
        try:
            with open(self.auth_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            print(f"[auth] failed to read {self.auth_path}: {e}")
            return None
        if not isinstance(data, dict) or not data.get("username"):
            return None
        return data

    def needs_setup(self) -> bool:
        return self.load_admin() is None

    def setup_admin(self, username: str, password: str) -> str:
        """Create the admin account. Caller checks needs_setup() first."""
        username = username.strip()
        if not username:
            raise ConfigValidationError("Username must not be empty")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ConfigValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        record = {"username": username, **hash_password(password, self.iterations), "created_at": utc_now()}
        atomic_write_text(self.auth_path, json.dumps(record, indent=2) + "\n")
        try:
            os.chmod(self.auth_path, 0o600)
        except OSError as e:
            print(f"[auth] chmod {self.auth_path} failed: {e}")
        return username

    def authenticate(self, username: str, password: str) -> bool:
        admin = self.load_admin()
        if admin is None:
            return False
        if not secrets.compare_digest(username.strip().encode(), str(admin["username"]).encode()):
            return False
        return verify_password(password, admin)

    def create_session(self, username: str) -> str:
        """Create a new session token."""
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._prune()
            self._sessions[token] = (username, time.time() + self.session_ttl)
        return token

    def session_user(self, token: Optional[str]) -> Optional[str]:
        """Username for a live session token, or None."""
        if not token:
            return None
        with self._lock:
            entry = self._sessions.get(token)
            if entry is None:
                return None
            username, expires_at = entry
            if expires_at <= time.time():
                del self._sessions[token]
                return None
            return username

    def drop_session(self, token: Optional[str]):
        if not token:
            return
        with self._lock:
            self._sessions.pop(token, None)

    def _prune(self):
        now = time.time()
        for token in [t for t, (_, exp) in self._sessions.items() if exp <= now]:
            del self._sessions[token]
