"""
${VAR} substitution for config values.

    "${NAME}"   -> value of NAME (process environment, then ~/.openclaw/env)
    "$${NAME}"  -> literal "${NAME}"

Only used for read-only views. Saved documents are always the raw form, so
a config referencing ${SECRET} keeps the reference on disk.
"""

import os
from typing import Any, Mapping, Optional

from config_errors import SubstitutionError


def substitute_string(
    text: str,
    env_vars: Mapping[str, str],
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """Expand every ${VAR} in text. Raises SubstitutionError on unknown names."""
    if "$" not in text:
        return text
    if environ is None:
        environ = os.environ

    out = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "$":
            # $${NAME} -> ${NAME}
            if text.startswith("${", i + 1):
                end = text.find("}", i + 3)
                if end != -1:
                    out.append("${" + text[i + 3:end] + "}")
                    i = end + 1
                    continue

            if text.startswith("{", i + 1):
                end = text.find("}", i + 2)
                if end != -1:
                    name = text[i + 2:end].strip()
                    if not name:
                        raise SubstitutionError("Config variable substitution failed: variable name is empty")
                    if name in environ:
                        value = environ[name]
                    elif name in env_vars:
                        value = env_vars[name]
                    else:
                        raise SubstitutionError(f"Config variable substitution failed: missing variable {name}")
                    out.append(value)
                    i = end + 1
                    continue

        out.append(ch)
        i += 1

    return "".join(out)


def substitute_config_vars(
    value: Any,
    env_vars: Mapping[str, str],
    environ: Optional[Mapping[str, str]] = None,
) -> Any:
    """Return a copy of value with every string leaf substituted."""
    if isinstance(value, str):
        return substitute_string(value, env_vars, environ)
    if isinstance(value, dict):
        return {k: substitute_config_vars(v, env_vars, environ) for k, v in value.items()}
    if isinstance(value, list):
        return [substitute_config_vars(item, env_vars, environ) for item in value]
    return value
