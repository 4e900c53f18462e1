"""
Command dispatcher: argument handling and routing.
"""

import pytest

from config_errors import ConfigValidationError
from dispatch import COMMANDS, CommandContext, dispatch_command, read_arg, require_string


@pytest.fixture
def ctx(settings, store):
    return CommandContext(settings, store)


class TestArgs:
    def test_read_arg_first_present_key(self):
        assert read_arg({"provider_name": "b"}, ["providerName", "provider_name"]) == "b"
        assert read_arg({"providerName": "a", "provider_name": "b"}, ["providerName", "provider_name"]) == "a"
        assert read_arg({}, ["x"]) is None

    def test_require_string_missing(self):
        with pytest.raises(ConfigValidationError, match="missing argument: key"):
            require_string({}, ["key"], "key")

    def test_require_string_wrong_type(self):
        with pytest.raises(ConfigValidationError, match="missing argument: key"):
            require_string({"key": 5}, ["key"], "key")

    def test_require_string_blank(self):
        with pytest.raises(ConfigValidationError, match="argument must not be empty: key"):
            require_string({"key": "  "}, ["key"], "key")


class TestDispatch:
    def test_every_command_registered(self):
        """The full command surface is reachable."""
        expected = {
            "get_config", "save_config", "get_agents_list", "save_agents_list",
            "get_bindings", "save_bindings", "get_env_value", "save_env_value",
            "get_or_create_gateway_token", "get_dashboard_url", "get_official_providers",
            "get_ai_config", "get_ai_providers", "save_provider", "delete_provider",
            "set_primary_model", "add_available_model", "remove_available_model",
            "get_channels_config", "save_channel_config", "clear_channel_config",
            "get_openclaw_version", "check_openclaw_installed", "start_service",
            "stop_service", "restart_service", "get_logs", "check_feishu_plugin",
            "install_feishu_plugin",
        }
        assert expected <= set(COMMANDS)

    def test_unknown_command(self, ctx):
        with pytest.raises(ConfigValidationError, match="Unknown command: nope"):
            dispatch_command(ctx, "nope", {})

    def test_args_must_be_object(self, ctx):
        with pytest.raises(ConfigValidationError):
            dispatch_command(ctx, "get_env_value", ["key"])

    def test_save_provider_snake_case(self, ctx, read_config):
        """snake_case keys work the same as camelCase."""
        result = dispatch_command(ctx, "save_provider", {
            "provider_name": "openai",
            "base_url": "https://api.openai.com/v1",
            "api_key": "sk-x",
            "api_type": "openai-completions",
            "models": [{"id": "gpt-4o", "name": "GPT-4o", "contextWindow": 128000}],
        })
        assert result == "Provider openai saved"
        provider = read_config()["models"]["providers"]["openai"]
        assert provider["models"][0]["contextWindow"] == 128000

    def test_save_provider_invalid_models(self, ctx):
        with pytest.raises(ConfigValidationError, match="invalid models argument"):
            dispatch_command(ctx, "save_provider", {
                "providerName": "openai", "baseUrl": "https://x", "apiType": "openai-completions",
                "models": [{"name": "missing id"}],
            })

    def test_save_provider_missing_api_type(self, ctx, store):
        with pytest.raises(ConfigValidationError, match="missing argument: apiType"):
            dispatch_command(ctx, "save_provider", {"providerName": "openai", "baseUrl": "https://x"})
        assert not store.config_path.exists()

    def test_save_channel_config(self, ctx, read_config):
        dispatch_command(ctx, "save_channel_config", {
            "channel": {"id": "feishu", "channel_type": "feishu", "enabled": True,
                        "config": {"appId": "cli_x", "testChatId": "oc_1"}},
        })
        assert read_config()["channels"]["feishu"] == {"enabled": True, "appId": "cli_x"}

    def test_save_channel_config_invalid(self, ctx):
        with pytest.raises(ConfigValidationError, match="invalid channel argument"):
            dispatch_command(ctx, "save_channel_config", {"channel": {"config": {}}})

    def test_save_config_missing(self, ctx):
        with pytest.raises(ConfigValidationError, match="missing argument: config"):
            dispatch_command(ctx, "save_config", {})

    def test_save_agents_list_camel_case(self, ctx, read_config):
        dispatch_command(ctx, "save_agents_list", {"agentsList": [{"id": "main"}]})
        assert read_config()["agents"]["list"] == [{"id": "main"}]

    def test_env_round_trip(self, ctx):
        dispatch_command(ctx, "save_env_value", {"key": "A_KEY", "value": ""})
        assert dispatch_command(ctx, "get_env_value", {"key": "A_KEY"}) == ""

    def test_gateway_port_from_config(self, ctx, write_config):
        write_config({"gateway": {"port": 19000}})
        assert ctx.gateway_port() == 19000

    def test_gateway_port_default(self, ctx, write_config):
        write_config("{ broken")
        assert ctx.gateway_port() == 18789
