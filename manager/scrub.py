"""
Regex scrubbing for anything that ends up in the audit log.

API keys, bot tokens and session tokens pass through the manager all the
time; they are redacted here before a log line is written.
"""

import re
from typing import Any

# (id, pattern, replacement)
BUILTIN_RULES = [
    ("api-key-sk", r"sk-[A-Za-z0-9_-]{20,}", "sk-***REDACTED***"),
    ("bearer-token", r"(?i)(Bearer\s+)[A-Za-z0-9_\-.]{20,}", r"\1***REDACTED***"),
    ("telegram-bot-token", r"\b\d{6,12}:[A-Za-z0-9_-]{30,}\b", "***REDACTED***"),
    ("slack-token", r"\bxox[abposr]-[A-Za-z0-9-]{10,}\b", "xox*-***REDACTED***"),
    ("dashboard-url-token", r"(?i)([?&]token=)[^&\s]+", r"\1***REDACTED***"),
]

# Keys whose values are always secrets, whatever they look like
SECRET_KEYS = {
    "apikey", "api_key", "token", "bottoken", "apptoken", "usertoken",
    "signingsecret", "appsecret", "secret", "password", "password_hash",
}

_COMPILED = [(re.compile(pattern), replacement) for _, pattern, replacement in BUILTIN_RULES]


def scrub(text: str) -> str:
    """Apply all scrub rules to a string."""
    if not text:
        return text
    for pattern, replacement in _COMPILED:
        text = pattern.sub(replacement, text)
    return text


def scrub_dict(d: Any) -> Any:
    """Recursively scrub all string values in a dict/list."""
    if isinstance(d, str):
        return scrub(d)
    if isinstance(d, dict):
        return {
            k: mask_secret(v) if isinstance(v, str) and k.lower() in SECRET_KEYS else scrub_dict(v)
            for k, v in d.items()
        }
    if isinstance(d, list):
        return [scrub_dict(item) for item in d]
    return d


def mask_secret(value: str) -> str:
    """Show the first and last four characters of a secret, or **** if it is short."""
    if len(value) > 8:
        return f"{value[:4]}...{value[-4:]}"
    return "****"
