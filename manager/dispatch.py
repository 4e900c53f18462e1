"""
Command dispatcher behind POST /api/invoke.

    {"cmd": "save_provider", "args": {"providerName": "openai", ...}}

Argument keys are accepted in camelCase or snake_case. Handlers return any
JSON-serialisable value; failures are raised as ConfigError subclasses whose
message goes back to the caller unchanged.
"""

from typing import Any, Callable, Optional

from pydantic import ValidationError

import ai_config
import channel_config
import config_commands
import openclaw_cli
from config_errors import ConfigError, ConfigValidationError
from config_store import ConfigStore, get_path
from settings import DEFAULT_GATEWAY_PORT, Settings

Handler = Callable[["CommandContext", dict], Any]

COMMANDS: dict[str, Handler] = {}


class CommandContext:
    """Everything a handler may touch: the settings and the document store."""

    def __init__(self, settings: Settings, store: Optional[ConfigStore] = None):
        self.settings = settings
        self.store = store or ConfigStore(settings)

    @property
    def openclaw_bin(self) -> Optional[str]:
        return self.settings.openclaw_bin

    def gateway_port(self) -> int:
        try:
            port = get_path(self.store.load_raw(), "gateway", "port")
        except ConfigError:
            return DEFAULT_GATEWAY_PORT
        if isinstance(port, int) and not isinstance(port, bool) and port > 0:
            return port
        return DEFAULT_GATEWAY_PORT


def command(name: str):
    """Register a handler under name."""
    def decorator(func: Handler) -> Handler:
        COMMANDS[name] = func
        return func
    return decorator


def read_arg(args: dict, keys: list[str]) -> Any:
    """First present value among keys, or None."""
    for key in keys:
        if key in args:
            return args[key]
    return None


def require_string(args: dict, keys: list[str], label: str) -> str:
    value = read_arg(args, keys)
    if not isinstance(value, str):
        raise ConfigValidationError(f"missing argument: {label}")
    if not value.strip():
        raise ConfigValidationError(f"argument must not be empty: {label}")
    return value


def require_value(args: dict, keys: list[str], label: str) -> Any:
    """Like require_string but any JSON value is accepted, as long as the key is present."""
    for key in keys:
        if key in args:
            return args[key]
    raise ConfigValidationError(f"missing argument: {label}")


def optional_int(args: dict, keys: list[str]) -> Optional[int]:
    value = read_arg(args, keys)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return None
    return value


def dispatch_command(ctx: CommandContext, cmd: str, args: Optional[dict] = None) -> Any:
    """Run one named command. Raises ConfigError on any failure."""
    handler = COMMANDS.get(cmd)
    if handler is None:
        raise ConfigValidationError(f"Unknown command: {cmd}")
    if args is None:
        args = {}
    if not isinstance(args, dict):
        raise ConfigValidationError("args must be a JSON object")
    return handler(ctx, args)


# ============================================================
# Config document
# ============================================================

@command("get_config")
def _get_config(ctx: CommandContext, args: dict):
    return config_commands.get_config(ctx.store)


@command("save_config")
def _save_config(ctx: CommandContext, args: dict):
    return config_commands.save_config(ctx.store, require_value(args, ["config"], "config"))


@command("get_agents_list")
def _get_agents_list(ctx: CommandContext, args: dict):
    return config_commands.get_agents_list(ctx.store)


@command("save_agents_list")
def _save_agents_list(ctx: CommandContext, args: dict):
    agents_list = require_value(args, ["agentsList", "agents_list"], "agentsList")
    return config_commands.save_agents_list(ctx.store, agents_list)


@command("get_bindings")
def _get_bindings(ctx: CommandContext, args: dict):
    return config_commands.get_bindings(ctx.store)


@command("save_bindings")
def _save_bindings(ctx: CommandContext, args: dict):
    return config_commands.save_bindings(ctx.store, require_value(args, ["bindings"], "bindings"))


@command("get_env_value")
def _get_env_value(ctx: CommandContext, args: dict):
    return config_commands.get_env_value(ctx.store, require_string(args, ["key"], "key"))


@command("save_env_value")
def _save_env_value(ctx: CommandContext, args: dict):
    key = require_string(args, ["key"], "key")
    value = read_arg(args, ["value"])
    if not isinstance(value, str):
        raise ConfigValidationError("missing argument: value")
    return config_commands.save_env_value(ctx.store, key, value)


@command("get_or_create_gateway_token")
def _get_or_create_gateway_token(ctx: CommandContext, args: dict):
    return config_commands.get_or_create_gateway_token(ctx.store)


@command("get_dashboard_url")
def _get_dashboard_url(ctx: CommandContext, args: dict):
    return config_commands.get_dashboard_url(ctx.store)


# ============================================================
# Providers and models
# ============================================================

@command("get_official_providers")
def _get_official_providers(ctx: CommandContext, args: dict):
    return ai_config.get_official_providers()


@command("get_ai_providers")
def _get_ai_providers(ctx: CommandContext, args: dict):
    return ai_config.get_ai_providers()


@command("get_ai_config")
def _get_ai_config(ctx: CommandContext, args: dict):
    return ai_config.get_ai_config(ctx.store)


@command("save_provider")
def _save_provider(ctx: CommandContext, args: dict):
    provider_name = require_string(args, ["providerName", "provider_name"], "providerName")
    base_url = require_string(args, ["baseUrl", "base_url"], "baseUrl")
    api_key = read_arg(args, ["apiKey", "api_key"])
    if not isinstance(api_key, str):
        api_key = None
    api_type = require_string(args, ["apiType", "api_type"], "apiType")

    raw_models = read_arg(args, ["models"])
    if raw_models is None:
        raw_models = []
    if not isinstance(raw_models, list):
        raise ConfigValidationError("invalid models argument: expected a list")
    try:
        models = [ai_config.ModelConfig.model_validate(m) for m in raw_models]
    except ValidationError as e:
        raise ConfigValidationError(f"invalid models argument: {e}") from e

    return ai_config.save_provider(ctx.store, provider_name, base_url, api_key, api_type, models)


@command("delete_provider")
def _delete_provider(ctx: CommandContext, args: dict):
    provider_name = require_string(args, ["providerName", "provider_name"], "providerName")
    return ai_config.delete_provider(ctx.store, provider_name)


@command("set_primary_model")
def _set_primary_model(ctx: CommandContext, args: dict):
    return ai_config.set_primary_model(ctx.store, require_string(args, ["modelId", "model_id"], "modelId"))


@command("add_available_model")
def _add_available_model(ctx: CommandContext, args: dict):
    return ai_config.add_available_model(ctx.store, require_string(args, ["modelId", "model_id"], "modelId"))


@command("remove_available_model")
def _remove_available_model(ctx: CommandContext, args: dict):
    return ai_config.remove_available_model(ctx.store, require_string(args, ["modelId", "model_id"], "modelId"))


# ============================================================
# Channels
# ============================================================

@command("get_channels_config")
def _get_channels_config(ctx: CommandContext, args: dict):
    return channel_config.get_channels_config(ctx.store)


@command("save_channel_config")
def _save_channel_config(ctx: CommandContext, args: dict):
    raw = require_value(args, ["channel"], "channel")
    try:
        channel = channel_config.ChannelConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigValidationError(f"invalid channel argument: {e}") from e
    return channel_config.save_channel_config(ctx.store, channel)


@command("clear_channel_config")
def _clear_channel_config(ctx: CommandContext, args: dict):
    channel_id = require_string(args, ["channelId", "channel_id"], "channelId")
    return channel_config.clear_channel_config(ctx.store, channel_id)


# ============================================================
# openclaw CLI
# ============================================================

@command("get_openclaw_version")
def _get_openclaw_version(ctx: CommandContext, args: dict):
    return openclaw_cli.get_openclaw_version(ctx.openclaw_bin)


@command("check_openclaw_installed")
def _check_openclaw_installed(ctx: CommandContext, args: dict):
    return openclaw_cli.check_openclaw_installed(ctx.openclaw_bin)


@command("start_service")
def _start_service(ctx: CommandContext, args: dict):
    return openclaw_cli.start_service(ctx.gateway_port(), ctx.openclaw_bin)


@command("stop_service")
def _stop_service(ctx: CommandContext, args: dict):
    return openclaw_cli.stop_service(ctx.gateway_port(), ctx.openclaw_bin)


@command("restart_service")
def _restart_service(ctx: CommandContext, args: dict):
    return openclaw_cli.restart_service(ctx.gateway_port(), ctx.openclaw_bin)


@command("get_logs")
def _get_logs(ctx: CommandContext, args: dict):
    lines = optional_int(args, ["lines"]) or openclaw_cli.DEFAULT_LOG_LINES
    return openclaw_cli.get_logs(lines, ctx.openclaw_bin)


@command("check_feishu_plugin")
def _check_feishu_plugin(ctx: CommandContext, args: dict):
    return openclaw_cli.check_feishu_plugin(ctx.openclaw_bin)


@command("install_feishu_plugin")
def _install_feishu_plugin(ctx: CommandContext, args: dict):
    return openclaw_cli.install_feishu_plugin(ctx.openclaw_bin)
