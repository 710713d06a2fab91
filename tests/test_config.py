"""Tests for configuration loading and validation."""

import json
import tempfile
from dataclasses import FrozenInstanceError, replace

import pytest
import yaml

from calls_gateway.config import load_config, validate_config
from calls_gateway.types import DEFAULT_CALL_BASE_URL, TimeoutConfig


class TestLoadConfig:
    def test_load_defaults(self):
        config = load_config(config_dict={}, env={})
        assert config.upstream.app_id == ""
        assert config.upstream.call_base_url == DEFAULT_CALL_BASE_URL
        assert config.upstream.debug is False
        assert config.timeouts == TimeoutConfig()
        assert config.server.host == "127.0.0.1"
        assert config.server.port == 5757

    def test_load_from_dict(self):
        config = load_config(config_dict={
            "app_id": "abc",
            "app_secret": "xyz",
            "debug": True,
            "timeouts": {"upstream": 5, "body_read": 2.5},
            "server": {"host": "0.0.0.0", "port": 8080},
        }, env={})
        assert config.upstream.app_id == "abc"
        assert config.upstream.app_secret == "xyz"
        assert config.upstream.debug is True
        assert config.timeouts.upstream == 5.0
        assert config.timeouts.body_read == 2.5
        assert config.timeouts.connect == 10.0
        assert config.server.port == 8080

    def test_sessions_url(self):
        config = load_config(config_dict={"app_id": "abc"}, env={})
        assert config.upstream.sessions_url == DEFAULT_CALL_BASE_URL + "abc/sessions/"

    def test_load_from_yaml_file(self):
        raw = {"app_id": "yaml-app", "app_secret": "k", "server": {"port": 9000}}
        with tempfile.NamedTemporaryFile(suffix=".yaml", mode="w", delete=False) as f:
            yaml.dump(raw, f)
            f.flush()
            config = load_config(config_path=f.name, env={})
        assert config.upstream.app_id == "yaml-app"
        assert config.server.port == 9000

    def test_load_legacy_json_settings(self, tmp_path):
        path = tmp_path / "cfappsettings.json"
        path.write_text(json.dumps({
            "AppID": "legacy-app",
            "AppSecret": "legacy-secret",
            "CallBaseUrl": "https://rtc.example.test/v1/apps/",
            "WebApplicationServerPort": 3000,
        }))
        config = load_config(config_path=path, env={})
        assert config.upstream.app_id == "legacy-app"
        assert config.upstream.app_secret == "legacy-secret"
        assert config.upstream.call_base_url == "https://rtc.example.test/v1/apps/"
        assert config.server.port == 3000

    def test_port_env_override(self):
        config = load_config(config_dict={"server": {"port": 8080}}, env={"port": "9191"})
        assert config.server.port == 9191

    def test_upper_port_env_override(self):
        config = load_config(config_dict={}, env={"PORT": "7000"})
        assert config.server.port == 7000

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "nope.yaml", env={})

    def test_discovers_config_in_cwd(self, tmp_path, monkeypatch):
        (tmp_path / "calls-gateway.yaml").write_text("app_id: found\n")
        monkeypatch.chdir(tmp_path)
        config = load_config(env={})
        assert config.upstream.app_id == "found"

    def test_empty_yaml_file(self, tmp_path):
        path = tmp_path / "calls-gateway.yaml"
        path.write_text("")
        config = load_config(config_path=path, env={})
        assert config.upstream.app_id == ""

    def test_empty_sections_use_defaults(self, tmp_path):
        path = tmp_path / "calls-gateway.yaml"
        path.write_text("app_id: a\ntimeouts:\nserver:\n")
        config = load_config(config_path=path, env={})
        assert config.timeouts == TimeoutConfig()
        assert config.server.port == 5757

    def test_discovers_config_in_parent(self, tmp_path, monkeypatch):
        (tmp_path / "calls-gateway.yaml").write_text("app_id: parent\n")
        child = tmp_path / "a" / "b"
        child.mkdir(parents=True)
        monkeypatch.chdir(child)
        assert load_config(env={}).upstream.app_id == "parent"

    def test_config_is_immutable(self):
        config = load_config(config_dict={"app_id": "a"}, env={})
        with pytest.raises(FrozenInstanceError):
            config.upstream.app_id = "b"


class TestValidateConfig:
    @pytest.fixture
    def valid(self):
        return load_config(config_dict={"app_id": "a", "app_secret": "s"}, env={})

    def test_valid(self, valid):
        assert validate_config(valid) == []

    def test_missing_credentials(self):
        errors = validate_config(load_config(config_dict={}, env={}))
        assert "app_id must be set" in errors
        assert "app_secret must be set" in errors

    def test_bad_base_url_scheme(self, valid):
        config = replace(valid, upstream=replace(valid.upstream, call_base_url="ftp://x/"))
        errors = validate_config(config)
        assert any("http(s)" in e for e in errors)

    def test_base_url_needs_trailing_slash(self, valid):
        config = replace(valid, upstream=replace(valid.upstream, call_base_url="https://x/v1/apps"))
        errors = validate_config(config)
        assert any("end with '/'" in e for e in errors)

    def test_timeouts_positive(self, valid):
        config = replace(valid, timeouts=TimeoutConfig(connect=0, upstream=-1, body_read=1))
        errors = validate_config(config)
        assert len(errors) == 2

    def test_port_range(self):
        config = load_config(config_dict={"app_id": "a", "app_secret": "s", "server": {"port": 70000}}, env={})
        assert any("server.port" in e for e in validate_config(config))
