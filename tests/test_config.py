"""Tests for settings loading and validation."""

import pytest

from confwatch.config import WatchSettings
from confwatch.errors import ConfigError
from confwatch.store.consul import ConsulKVStore


class TestWatchSettings:
    def test_defaults(self):
        settings = WatchSettings()
        assert settings.address == "http://127.0.0.1:8500"
        assert settings.token is None
        assert settings.wait == 30.0
        assert settings.retry.backoff_jitter == 0.5

    def test_retry_policy(self):
        settings = WatchSettings(retry={"max_attempts": 4, "min_backoff": 0.5})
        policy = settings.retry_policy().normalize()
        assert policy.max_attempts == 4
        assert policy.min_backoff == 0.5
        assert policy.max_backoff == 300.0
        assert policy.backoff_jitter == 0.5

    def test_build_store(self):
        settings = WatchSettings(address="http://consul:8500", token="t", datacenter="dc1", wait=5)
        store = settings.build_store()
        assert isinstance(store, ConsulKVStore)
        assert store.address == "http://consul:8500"
        assert store.datacenter == "dc1"
        assert store.default_wait == 5.0
        store.close()


class TestFromEnv:
    def test_reads_prefixed_variables(self):
        settings = WatchSettings.from_env({
            "CONFWATCH_ADDRESS": "http://consul:8500",
            "CONFWATCH_WAIT": "12.5",
            "CONFWATCH_RETRY_MAX_ATTEMPTS": "3",
            "CONFWATCH_RETRY_BACKOFF_JITTER": "0.1",
        })
        assert settings.address == "http://consul:8500"
        assert settings.wait == 12.5
        assert settings.retry.max_attempts == 3
        assert settings.retry.backoff_jitter == 0.1

    def test_consul_token_fallback(self):
        settings = WatchSettings.from_env({"CONSUL_HTTP_TOKEN": "abc"})
        assert settings.token == "abc"

    def test_prefixed_token_wins(self):
        settings = WatchSettings.from_env({"CONSUL_HTTP_TOKEN": "abc", "CONFWATCH_TOKEN": "xyz"})
        assert settings.token == "xyz"

    def test_empty_environment(self):
        assert WatchSettings.from_env({}) == WatchSettings()

    def test_invalid_value(self):
        with pytest.raises(ConfigError, match="retry.backoff_jitter"):
            WatchSettings.from_env({"CONFWATCH_RETRY_BACKOFF_JITTER": "1.5"})


class TestFromYaml:
    def test_consul_section(self, tmp_path):
        path = tmp_path / "confwatch.yaml"
        path.write_text(
            "consul:\n"
            "  address: http://consul.internal:8500\n"
            "  datacenter: dc1\n"
            "wait: 10\n"
            "retry:\n"
            "  max_backoff: 60\n"
        )
        settings = WatchSettings.from_yaml(path)
        assert settings.address == "http://consul.internal:8500"
        assert settings.datacenter == "dc1"
        assert settings.wait == 10
        assert settings.retry.max_backoff == 60

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert WatchSettings.from_yaml(path) == WatchSettings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            WatchSettings.from_yaml(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("wait: [1, 2\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            WatchSettings.from_yaml(path)

    def test_unknown_field(self, tmp_path):
        path = tmp_path / "extra.yaml"
        path.write_text("colour: blue\n")
        with pytest.raises(ConfigError, match="colour"):
            WatchSettings.from_yaml(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            WatchSettings.from_yaml(path)
