"""Tests for config module."""

from argparse import Namespace

import pytest
import yaml

from debug_console.config import Config, load_config, load_yaml_config, merged_schema

ENV_VARS = (
    "DEBUG_CONSOLE_BASE_URL", "DEBUG_CONSOLE_TOKEN", "POLL_INTERVAL",
    "REQUEST_TIMEOUT", "DISPLAY_TIMEZONE", "LOG_LEVEL", "CONFIG_PATH",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestConfigDefaults:
    def test_defaults(self):
        cfg = Config()
        assert cfg.base_url == "http://localhost:3001/api"
        assert cfg.token is None
        assert cfg.poll_interval == 3.0
        assert cfg.request_timeout == 10.0
        assert cfg.display_timezone == "Europe/Paris"
        assert cfg.log_level == "INFO"
        assert cfg.categories == {}

    def test_frozen(self):
        cfg = Config()
        with pytest.raises(AttributeError):
            cfg.poll_interval = 1.0

    def test_load_without_sources(self):
        assert load_config() == Config()


class TestLoadYaml:
    def test_no_path(self):
        assert load_yaml_config(None) == {}

    def test_missing_file(self, tmp_path):
        assert load_yaml_config(str(tmp_path / "nope.yaml")) == {}

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("base_url: [unclosed\n")
        assert load_yaml_config(str(path)) == {}

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        assert load_yaml_config(str(path)) == {}

    def test_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({
            "base_url": "https://admin.example.com/api",
            "poll_interval": 5,
            "categories": {"Billing": ["Invoice", "Refund"]},
        }))
        cfg = load_config(yaml_data=load_yaml_config(str(path)))
        assert cfg.base_url == "https://admin.example.com/api"
        assert cfg.poll_interval == 5.0
        assert cfg.categories == {"Billing": ["Invoice", "Refund"]}
        assert cfg.request_timeout == 10.0  # default preserved


class TestPrecedence:
    def test_env_overrides_yaml(self, monkeypatch):
        monkeypatch.setenv("POLL_INTERVAL", "1.5")
        monkeypatch.setenv("DEBUG_CONSOLE_TOKEN", "env-token")
        cfg = load_config(yaml_data={"poll_interval": 10, "token": "yaml-token"})
        assert cfg.poll_interval == 1.5
        assert cfg.token == "env-token"

    def test_cli_overrides_env(self, monkeypatch):
        monkeypatch.setenv("DEBUG_CONSOLE_BASE_URL", "http://env/api")
        args = Namespace(config=None, base_url="http://cli/api", token=None,
                         poll_interval=None, log_level="debug")
        cfg = load_config(args, yaml_data={})
        assert cfg.base_url == "http://cli/api"
        assert cfg.log_level == "DEBUG"

    def test_config_path_from_env(self, monkeypatch, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("display_timezone: UTC\n")
        monkeypatch.setenv("CONFIG_PATH", str(path))
        assert load_config().display_timezone == "UTC"


class TestMergedSchema:
    def test_extends_without_mutating(self):
        static = {"API": {"Points"}}
        cfg = Config(categories={"API": ["Metrics"], "Billing": ["Invoice"]})
        merged = merged_schema(static, cfg)
        assert merged == {"API": {"Points", "Metrics"}, "Billing": {"Invoice"}}
        assert static == {"API": {"Points"}}
