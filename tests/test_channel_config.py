"""
Channel save / clear / read against a temp openclaw.json.
"""

import pytest

from channel_config import (
    CHANNEL_TYPES,
    ChannelConfig,
    clear_channel_config,
    get_channels_config,
    save_channel_config,
)
from config_errors import ConfigValidationError
from env_file import read_env_file, read_env_value


class TestSaveChannelConfig:
    def test_first_save(self, store, read_config):
        """Channel, plugin allow-list and plugin entry are created."""
        message = save_channel_config(store, ChannelConfig(
            id="telegram", channel_type="telegram",
            config={"botToken": "123:abc", "dmPolicy": "pairing"},
        ))
        assert message == "telegram configuration saved"
        saved = read_config()
        assert saved["channels"]["telegram"] == {"enabled": True, "botToken": "123:abc", "dmPolicy": "pairing"}
        assert saved["plugins"]["allow"] == ["telegram"]
        assert saved["plugins"]["entries"]["telegram"] == {"enabled": True}

    def test_test_only_fields_go_to_env(self, store, read_config):
        """userId never lands in openclaw.json."""
        save_channel_config(store, ChannelConfig(id="telegram", config={"botToken": "t", "userId": "42"}))
        assert "userId" not in read_config()["channels"]["telegram"]
        assert read_env_value(store.env_path, "OPENCLAW_TELEGRAM_USERID") == "42"

    def test_allow_list_deduped_and_cleaned(self, store, write_config, read_config):
        write_config({"plugins": {"allow": ["telegram", "", "  ", "feishu"]}})
        save_channel_config(store, ChannelConfig(id="telegram", config={}))
        assert read_config()["plugins"]["allow"] == ["telegram", "feishu"]

    def test_existing_accounts_preserved(self, store, write_config, read_config):
        """A save without accounts keeps the accounts already on disk."""
        write_config({"channels": {"feishu": {"enabled": True, "accounts": {"main": {"appId": "a"}}}}})
        save_channel_config(store, ChannelConfig(id="feishu", config={"domain": "feishu"}))
        assert read_config()["channels"]["feishu"]["accounts"] == {"main": {"appId": "a"}}

    def test_accounts_rewrite_bindings_in_existing_shape(self, store, write_config, read_config):
        """Grouped bindings stay grouped; other channels are untouched."""
        write_config({"bindings": {"telegram": {"old": "main"}, "discord": {"d": "work"}}})
        save_channel_config(store, ChannelConfig(
            id="telegram",
            config={},
            accounts={"a1": {"agentId": "coder", "botToken": "x"}, "a2": {"agentId": "  "}, "a3": {}},
        ))
        saved = read_config()
        assert saved["bindings"] == {"telegram": {"a1": "coder"}, "discord": {"d": "work"}}
        assert saved["channels"]["telegram"]["accounts"]["a1"]["botToken"] == "x"

    def test_save_without_accounts_drops_stale_bindings(self, store, write_config, read_config):
        """Bindings for the channel are recomputed even when no accounts are sent."""
        write_config({"bindings": [
            {"agentId": "main", "match": {"channel": "telegram", "accountId": "old"}},
            {"agentId": "work", "match": {"channel": "discord", "accountId": "d"}},
        ]})
        save_channel_config(store, ChannelConfig(id="telegram", config={"botToken": "x"}))
        assert read_config()["bindings"] == [
            {"agentId": "work", "match": {"channel": "discord", "accountId": "d"}},
        ]
        telegram = next(c for c in get_channels_config(store) if c["id"] == "telegram")
        assert telegram["accounts"] is None

    def test_scalar_test_field_coerced(self, store, read_config):
        """A numeric chat id is stored as text, never dropped."""
        save_channel_config(store, ChannelConfig(id="telegram", config={"userId": 42}))
        assert read_env_value(store.env_path, "OPENCLAW_TELEGRAM_USERID") == "42"
        assert "userId" not in read_config()["channels"]["telegram"]

    def test_structured_test_field_rejected(self, store):
        with pytest.raises(ConfigValidationError, match="testChatId"):
            save_channel_config(store, ChannelConfig(id="feishu", config={"testChatId": ["oc_1"]}))
        assert not store.config_path.exists()
        assert read_env_file(store.env_path) == {}

    def test_accounts_bindings_default_to_array(self, store, read_config):
        save_channel_config(store, ChannelConfig(id="discord", accounts={"acc1": {"agentId": "agentX"}}))
        assert read_config()["bindings"] == [
            {"agentId": "agentX", "match": {"channel": "discord", "accountId": "acc1"}}
        ]

    def test_raw_document_is_saved(self, store, write_config, read_config, monkeypatch):
        """${VAR} references elsewhere in the file survive a channel save."""
        monkeypatch.setenv("OPENAI_KEY", "sk-resolved")
        write_config({"models": {"providers": {"openai": {"apiKey": "${OPENAI_KEY}"}}}})
        save_channel_config(store, ChannelConfig(id="slack", config={"botToken": "xoxb"}))
        assert read_config()["models"]["providers"]["openai"]["apiKey"] == "${OPENAI_KEY}"

    def test_gateway_port_preserved(self, store, write_config, read_config):
        write_config({"gateway": {"port": 18789}})
        save_channel_config(store, ChannelConfig(id="slack", config={}))
        assert read_config()["gateway"]["port"] == 18789

    def test_blank_id_rejected(self, store):
        with pytest.raises(ConfigValidationError):
            save_channel_config(store, ChannelConfig(id="  "))
        assert not store.config_path.exists()


class TestClearChannelConfig:
    def test_clear_removes_everything(self, store, write_config, read_config):
        write_config({
            "channels": {"telegram": {"enabled": True}, "slack": {"enabled": True}},
            "plugins": {"allow": ["telegram", "slack"], "entries": {"telegram": {"enabled": True}, "slack": {}}},
            "bindings": {"telegram/a": "main", "slack/b": "work"},
        })
        store.env_path.write_text("OPENCLAW_TELEGRAM_USERID=42\nOTHER=1\n")

        assert clear_channel_config(store, "telegram") == "telegram configuration cleared"

        saved = read_config()
        assert saved["channels"] == {"slack": {"enabled": True}}
        assert saved["plugins"]["allow"] == ["slack"]
        assert saved["plugins"]["entries"] == {"slack": {}}
        assert saved["bindings"] == {"slack/b": "work"}
        assert read_env_file(store.env_path) == {"OTHER": "1"}

    def test_clear_unknown_channel(self, store, read_config):
        """Clearing a channel that was never saved still succeeds."""
        clear_channel_config(store, "wechat")
        assert read_config()["bindings"] == []


class TestGetChannelsConfig:
    def test_all_known_channels_listed(self, store):
        channels = get_channels_config(store)
        assert [c["id"] for c in channels] == list(CHANNEL_TYPES)
        assert all(c["enabled"] is False and c["accounts"] is None for c in channels)

    def test_config_env_fields_and_bindings(self, store, write_config, monkeypatch):
        monkeypatch.delenv("TG_TOKEN", raising=False)
        write_config({
            "channels": {"telegram": {"botToken": "${TG_TOKEN}", "accounts": {"a": {"name": "A"}}}},
            "bindings": [
                {"agentId": "main", "match": {"channel": "telegram", "accountId": "a"}},
                {"agentId": "work", "match": {"channel": "telegram", "accountId": "b"}},
            ],
        })
        store.env_path.write_text("TG_TOKEN=123:abc\nOPENCLAW_TELEGRAM_USERID=42\n")

        telegram = next(c for c in get_channels_config(store) if c["id"] == "telegram")
        assert telegram["enabled"] is True
        assert telegram["config"] == {"botToken": "123:abc", "userId": "42"}
        assert telegram["accounts"] == {"a": {"name": "A", "agentId": "main"}, "b": {"agentId": "work"}}
