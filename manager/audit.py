"""
Append-only JSONL audit log.

One line per event:
    {"timestamp": "2026-01-01T00:00:00+00:00", "event": "provider_saved", ...}
Details are scrubbed of secrets before they are written or printed.
"""

import json
import os
from datetime import datetime, timezone
from pathlib import Path

from scrub import scrub_dict

AUDIT_LOG = Path(os.environ.get(
    "OPENCLAW_MANAGER_AUDIT_LOG",
    str(Path.home() / ".openclaw" / "manager-audit.jsonl"),
))


def configure_audit_log(path: Path):
    """Point the audit log at path (used by the app factory)."""
    global AUDIT_LOG
    AUDIT_LOG = Path(path)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def audit_log(event: str, details: dict):
    """Append an event to the audit log."""
    details = scrub_dict(details)
    entry = {
        "timestamp": utc_now(),
        "event": event,
        **details,
    }
    try:
        AUDIT_LOG.parent.mkdir(parents=True, exist_ok=True)
        with open(AUDIT_LOG, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")
    except OSError as e:
        print(f"[audit] failed to write {AUDIT_LOG}: {e}")
    print(f"[audit] {event}: {details}")


def read_audit_log(limit: int = 50) -> list[dict]:
    """Most recent audit entries, newest first."""
    if not AUDIT_LOG.exists():
        return []
    entries = []
    with open(AUDIT_LOG, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError:
                continue
    entries.reverse()
    return entries[:limit]
