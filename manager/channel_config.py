"""
Messaging channel configuration (channels.<id> in openclaw.json).

A channel block is free-form apart from `enabled` and `accounts`. Fields that
only drive connectivity tests (chat ids to send a test message to) are kept
out of openclaw.json and stored in the env file as
OPENCLAW_<CHANNEL>_<FIELD>.

Saving a channel also keeps plugins.allow / plugins.entries and the
account -> agent bindings in step with it.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from audit import audit_log
from channel_bindings import parse_bindings
from config_errors import ConfigValidationError
from config_store import ConfigStore, ensure_object
from env_file import read_env_value, remove_env_value, set_env_value

# channel id -> test-only fields shown for it
CHANNEL_TYPES = {
    "telegram": ["userId"],
    "discord": ["testChannelId"],
    "slack": ["testChannelId"],
    "feishu": ["testChatId"],
    "whatsapp": [],
    "imessage": [],
    "wechat": [],
    "dingtalk": [],
}

TEST_ONLY_FIELDS = ("userId", "testChatId", "testChannelId")


class ChannelConfig(BaseModel):
    id: str
    channel_type: str = ""
    enabled: bool = False
    config: dict[str, Any] = Field(default_factory=dict)
    accounts: Optional[dict[str, Any]] = None


def test_field_env_key(channel_id: str, field: str) -> str:
    return f"OPENCLAW_{channel_id.upper()}_{field.upper()}"


def get_channels_config(store: ConfigStore) -> list[dict]:
    """Every known channel with its config, accounts and test fields."""
    config = store.load()
    channels_obj = config.get("channels")
    if not isinstance(channels_obj, dict):
        channels_obj = {}
    bindings = parse_bindings(config.get("bindings", []))

    result = []
    for channel_id, test_fields in CHANNEL_TYPES.items():
        channel_cfg = channels_obj.get(channel_id)
        if not isinstance(channel_cfg, dict):
            channel_cfg = {}

        accounts = channel_cfg.get("accounts")
        accounts = dict(accounts) if isinstance(accounts, dict) else {}

        # Bindings are authoritative for agentId; accounts only known from bindings get a node too
        for account_id, agent_id in bindings.for_channel(channel_id).items():
            account = accounts.get(account_id)
            account = dict(account) if isinstance(account, dict) else {}
            account["agentId"] = agent_id
            accounts[account_id] = account

        enabled = channel_cfg.get("enabled") is True
        config_map = {k: v for k, v in channel_cfg.items() if k not in ("enabled", "accounts")}

        for field in test_fields:
            value = read_env_value(store.env_path, test_field_env_key(channel_id, field))
            if value is not None:
                config_map[field] = value

        has_config = bool(config_map) or enabled or bool(accounts)
        result.append(ChannelConfig(
            id=channel_id,
            channel_type=channel_id,
            enabled=has_config,
            config=config_map,
            accounts=accounts or None,
        ).model_dump())

    return result


def save_channel_config(store: ConfigStore, channel: ChannelConfig) -> str:
    """Write one channel block and sync plugins and bindings with it."""
    channel_id = channel.id.strip()
    if not channel_id:
        raise ConfigValidationError("Channel id must not be empty")
    channel_type = channel.channel_type or channel_id

    env_updates: dict[str, str] = {}

    with store.transaction() as config:
        channels = ensure_object(config, "channels")
        plugins = ensure_object(config, "plugins")
        if not isinstance(plugins.get("allow"), list):
            plugins["allow"] = []
        ensure_object(plugins, "entries")

        channel_obj: dict[str, Any] = {"enabled": True}
        for key, value in channel.config.items():
            if key in TEST_ONLY_FIELDS:
                if value is None:
                    continue
                if isinstance(value, (dict, list)):
                    raise ConfigValidationError(f"{key} must be a string, got {type(value).__name__}")
                env_updates[test_field_env_key(channel_id, key)] = str(value)
                continue
            channel_obj[key] = value

        previous = channels.get(channel_id)
        if channel.accounts:
            channel_obj["accounts"] = channel.accounts
        elif isinstance(previous, dict) and "accounts" in previous:
            channel_obj["accounts"] = previous["accounts"]

        channels[channel_id] = channel_obj

        allow = [v for v in plugins["allow"] if not (isinstance(v, str) and not v.strip())]
        if channel_id not in allow:
            allow.append(channel_id)
        plugins["allow"] = allow
        plugins["entries"][channel_id] = {"enabled": True}

        # Bindings for this channel follow the accounts the caller sent
        bindings = parse_bindings(config.get("bindings", []))
        bindings.drop_channel(channel_id)
        for account_id, account_cfg in (channel.accounts or {}).items():
            agent_id = account_cfg.get("agentId") if isinstance(account_cfg, dict) else None
            if isinstance(agent_id, str) and agent_id.strip():
                bindings.set(channel_id, account_id, agent_id)
        config["bindings"] = bindings.render()

    for env_key, value in env_updates.items():
        set_env_value(store.env_path, env_key, value)

    accounts_written = channel_obj.get("accounts")
    audit_log("channel_config_saved", {
        "channel": channel_id,
        "keys": sorted(k for k in channel_obj if k not in ("enabled", "accounts")),
        "accounts": sorted(accounts_written) if isinstance(accounts_written, dict) else [],
    })
    return f"{channel_type} configuration saved"


def clear_channel_config(store: ConfigStore, channel_id: str) -> str:
    """Remove a channel from the document, its bindings and its env keys."""
    channel_id = channel_id.strip()
    if not channel_id:
        raise ConfigValidationError("Channel id must not be empty")

    with store.transaction() as config:
        channels = config.get("channels")
        if isinstance(channels, dict):
            channels.pop(channel_id, None)

        plugins = config.get("plugins")
        if isinstance(plugins, dict):
            if isinstance(plugins.get("allow"), list):
                plugins["allow"] = [v for v in plugins["allow"] if v != channel_id]
            if isinstance(plugins.get("entries"), dict):
                plugins["entries"].pop(channel_id, None)

        bindings = parse_bindings(config.get("bindings", []))
        bindings.drop_channel(channel_id)
        config["bindings"] = bindings.render()

    for field in TEST_ONLY_FIELDS:
        remove_env_value(store.env_path, test_field_env_key(channel_id, field))

    audit_log("channel_config_cleared", {"channel": channel_id})
    return f"{channel_id} configuration cleared"
