"""Unit tests for the config file and API key lookup"""

import json
from unittest.mock import MagicMock, patch

import pytest

from core.config import ConfigManager, get_app_dir, get_cache_dir
from core.secrets import delete_api_key, get_api_key, list_api_keys, set_api_key


@pytest.fixture
def config(tmp_path):
    return ConfigManager(tmp_path / "config.json")


@pytest.fixture
def keyring():
    fake = MagicMock()
    fake.get_password.return_value = None
    with patch("core.secrets._get_keyring", return_value=fake):
        yield fake


class TestAppDirs:

    def test_home_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("REELSMITH_HOME", str(tmp_path / "home"))
        assert get_app_dir() == tmp_path / "home"
        assert get_cache_dir("music") == tmp_path / "home" / "cache" / "music"

    def test_unknown_cache_kind(self):
        with pytest.raises(ValueError):
            get_cache_dir("videos")


class TestConfigManager:

    def test_missing_file_is_empty(self, config):
        assert config.get("render.concurrency") is None
        assert config.get("render.concurrency", 2) == 2

    def test_set_creates_nested_keys(self, config):
        config.set("gemini.apiKey", "abc")
        config.set("render.concurrency", 4)

        on_disk = json.loads(config.path.read_text())
        assert on_disk == {"gemini": {"apiKey": "abc"}, "render": {"concurrency": 4}}
        assert ConfigManager(config.path).get("render.concurrency") == 4

    def test_set_replaces_scalar_with_section(self, config):
        config.set("render", "fast")
        config.set("render.concurrency", 3)
        assert config.get("render") == {"concurrency": 3}

    def test_unset(self, config):
        config.set("render.concurrency", 4)
        assert config.unset("render.concurrency") is True
        assert config.unset("render.concurrency") is False
        assert config.unset("missing.key") is False
        assert config.get("render") == {}

    def test_flatten(self, config):
        config.set("gemini.apiKey", "abc")
        config.set("render.concurrency", 4)
        assert config.flatten() == {"gemini.apiKey": "abc", "render.concurrency": 4}

    def test_corrupt_file_is_ignored(self, config):
        config.path.write_text("{oops")
        assert config.get("gemini.apiKey") is None


class TestGetApiKey:
    """Keychain, then config file, then environment"""

    def test_keychain_wins(self, keyring, config, monkeypatch):
        keyring.get_password.return_value = "from-keychain"
        config.set("gemini.apiKey", "from-config")
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")

        assert get_api_key("GEMINI_API_KEY", config) == "from-keychain"
        keyring.get_password.assert_called_with("reelsmith", "GEMINI_API_KEY")

    def test_config_before_env(self, keyring, config, monkeypatch):
        config.set("gemini.apiKey", "from-config")
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")
        assert get_api_key("GEMINI_API_KEY", config) == "from-config"

    def test_env_last(self, keyring, config, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")
        assert get_api_key("GEMINI_API_KEY", config) == "from-env"
        assert get_api_key("GEMINI_API_KEY", config, fallback_to_env=False) is None

    def test_keychain_errors_fall_through(self, keyring, config, monkeypatch):
        keyring.get_password.side_effect = RuntimeError("locked")
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")
        assert get_api_key("GEMINI_API_KEY", config) == "from-env"

    def test_not_found(self, keyring, config):
        assert get_api_key("GEMINI_API_KEY", config) is None


class TestKeychainWrites:

    def test_set_and_delete(self, keyring):
        assert set_api_key("GEMINI_API_KEY", "abc") is True
        keyring.set_password.assert_called_once_with("reelsmith", "GEMINI_API_KEY", "abc")

        assert delete_api_key("GEMINI_API_KEY") is True
        keyring.delete_password.assert_called_once_with("reelsmith", "GEMINI_API_KEY")

    def test_set_failure(self, keyring):
        keyring.set_password.side_effect = RuntimeError("no backend")
        assert set_api_key("GEMINI_API_KEY", "abc") is False

    def test_without_keyring(self):
        with patch("core.secrets._get_keyring", return_value=None):
            assert set_api_key("GEMINI_API_KEY", "abc") is False
            assert delete_api_key("GEMINI_API_KEY") is False

    def test_list_sources(self, keyring, config, monkeypatch):
        assert list_api_keys(config) == {"GEMINI_API_KEY": "not_set"}

        monkeypatch.setenv("GEMINI_API_KEY", "x")
        assert list_api_keys(config) == {"GEMINI_API_KEY": "env"}

        config.set("gemini.apiKey", "y")
        assert list_api_keys(config) == {"GEMINI_API_KEY": "config"}

        keyring.get_password.return_value = "z"
        assert list_api_keys(config) == {"GEMINI_API_KEY": "keychain"}
