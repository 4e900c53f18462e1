"""
Whole-document and small-section commands: config, agents.list, bindings,
env values and the gateway auth token.
"""

import secrets
from typing import Any, Optional

from atomic_io import path_lock
from audit import audit_log
from channel_bindings import parse_bindings
from config_errors import ConfigValidationError
from config_store import ConfigStore, ensure_object, get_path
from env_file import read_env_value, set_env_value
from settings import DEFAULT_GATEWAY_PORT


def get_config(store: ConfigStore) -> dict:
    return store.load()


def save_config(store: ConfigStore, config: Any) -> str:
    """Replace the whole document. Gateway network fields missing from config are kept."""
    if not isinstance(config, dict):
        raise ConfigValidationError("Config must be a JSON object")
    store.save(config)
    audit_log("config_saved", {"top_level_keys": sorted(config)})
    return "Config saved"


def get_agents_list(store: ConfigStore) -> Any:
    """agents.list, or [] when the document has none."""
    return get_path(store.load(), "agents", "list", default=[])


def save_agents_list(store: ConfigStore, agents_list: Any) -> str:
    with store.transaction() as config:
        ensure_object(config, "agents")["list"] = agents_list
    count = len(agents_list) if isinstance(agents_list, list) else None
    audit_log("agents_list_saved", {"count": count})
    return "agents.list saved"


def get_bindings(store: ConfigStore) -> Any:
    """bindings, or {} when the document has none."""
    return store.load().get("bindings", {})


def save_bindings(store: ConfigStore, bindings: Any) -> str:
    """Replace bindings verbatim. The caller chooses the shape."""
    with store.transaction() as config:
        config["bindings"] = bindings
    parsed = parse_bindings(bindings)
    audit_log("bindings_saved", {
        "shape": parsed.shape.value,
        "pairs": len(parsed.pairs),
        "skipped": parsed.skipped,
    })
    return "bindings saved"


def get_env_value(store: ConfigStore, key: str) -> Optional[str]:
    return read_env_value(store.env_path, key)


def save_env_value(store: ConfigStore, key: str, value: str) -> str:
    set_env_value(store.env_path, key, value)
    audit_log("env_value_saved", {"key": key})
    return f"{key} saved"


def generate_gateway_token() -> str:
    """48 hex chars (192 bits) from the OS CSPRNG."""
    return secrets.token_hex(24)


def get_or_create_gateway_token(store: ConfigStore) -> str:
    """Return gateway.auth.token, generating and saving one if it is missing or empty."""
    with path_lock(store.config_path):
        config = store.load_raw()
        token = get_path(config, "gateway", "auth", "token")
        if isinstance(token, str) and token:
            return token

        token = generate_gateway_token()
        gateway = ensure_object(config, "gateway")
        auth = ensure_object(gateway, "auth")
        auth["token"] = token
        auth["mode"] = "token"
        gateway["mode"] = "local"
        store.save(config)

    audit_log("gateway_token_created", {"token": token})
    return token


def get_dashboard_url(store: ConfigStore) -> str:
    token = get_or_create_gateway_token(store)
    port = get_path(store.load_raw(), "gateway", "port")
    if not isinstance(port, int) or isinstance(port, bool) or port <= 0:
        port = DEFAULT_GATEWAY_PORT
    return f"http://localhost:{port}?token={token}"
