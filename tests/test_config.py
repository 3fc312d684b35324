#!/usr/bin/env python3
"""
Tests for configuration providers and logging configuration.
"""

import logging

import pytest
import yaml

from kubeagentix.config import (
    EnvConfigProvider,
    FileConfigProvider,
    LLMConfig,
    load_config_provider,
)
from kubeagentix.logging_config import HealthCheckFilter, get_logging_config

ENV_KEYS = [
    "API_HOST",
    "API_PORT",
    "API_DEBUG",
    "LOG_LEVEL",
    "CORS_ORIGINS",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_AUTH_TOKEN",
    "OPENAI_API_KEY",
    "GOOGLE_API_KEY",
    "CLAUDE_MODEL",
    "OPENAI_MODEL",
    "GEMINI_MODEL",
    "LLM_REQUEST_TIMEOUT",
    "KUBEAGENTIX_CONFIG",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestEnvConfigProvider:
    """Test environment-based configuration."""

    def test_defaults(self):
        provider = EnvConfigProvider()
        api = provider.get_api_config()
        llm = provider.get_llm_config()

        assert api.host == "0.0.0.0"
        assert api.port == 8080
        assert api.debug is False
        assert api.cors_origins == ["*"]
        assert llm.configured_provider_ids == []
        assert llm.request_timeout_seconds == 30.0

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("API_PORT", "9000")
        monkeypatch.setenv("API_DEBUG", "TRUE")
        monkeypatch.setenv("CORS_ORIGINS", "https://a.example,https://b.example")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-oa")
        monkeypatch.setenv("ANTHROPIC_AUTH_TOKEN", "tok")
        monkeypatch.setenv("GEMINI_MODEL", "gemini-x")
        monkeypatch.setenv("LLM_REQUEST_TIMEOUT", "12.5")

        provider = EnvConfigProvider()
        api = provider.get_api_config()
        llm = provider.get_llm_config()

        assert api.port == 9000
        assert api.debug is True
        assert api.cors_origins == ["https://a.example", "https://b.example"]
        assert llm.configured_provider_ids == ["claude", "openai"]
        assert llm.gemini_model == "gemini-x"
        assert llm.request_timeout_seconds == 12.5

    def test_blank_keys_are_unset(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "")
        assert EnvConfigProvider().get_llm_config().google_api_key is None


class TestFileConfigProvider:
    """Test YAML configuration layered over the environment."""

    def _write(self, tmp_path, data):
        path = tmp_path / "kubeagentix.yaml"
        path.write_text(yaml.safe_dump(data))
        return str(path)

    def test_overlays_camel_and_snake_keys(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "from-env")
        path = self._write(
            tmp_path,
            {
                "api": {"port": 9090, "corsOrigins": ["https://ops.example.com"]},
                "llm": {"claudeModel": "claude-custom", "request_timeout_seconds": 20},
            },
        )

        provider = FileConfigProvider(path)
        api = provider.get_api_config()
        llm = provider.get_llm_config()

        assert api.port == 9090
        assert api.cors_origins == ["https://ops.example.com"]
        assert api.host == "0.0.0.0"
        assert llm.claude_model == "claude-custom"
        assert llm.request_timeout_seconds == 20
        assert llm.openai_api_key == "from-env"

    def test_unknown_keys_are_ignored(self, tmp_path, caplog):
        path = self._write(tmp_path, {"api": {"bogusKey": 1}})

        with caplog.at_level(logging.WARNING):
            api = FileConfigProvider(path).get_api_config()

        assert api.port == 8080
        assert "Ignoring unknown config key: bogusKey" in caplog.text

    def test_missing_file_uses_environment(self, tmp_path):
        provider = FileConfigProvider(str(tmp_path / "absent.yaml"))
        assert provider.get_api_config().port == 8080

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert FileConfigProvider(str(path)).get_llm_config() == LLMConfig()

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            FileConfigProvider(str(path))

    def test_load_config_provider(self, tmp_path, monkeypatch):
        assert isinstance(load_config_provider(), EnvConfigProvider)

        monkeypatch.setenv("KUBEAGENTIX_CONFIG", self._write(tmp_path, {}))
        assert isinstance(load_config_provider(), FileConfigProvider)


class TestLoggingConfig:
    """Test the logging dictConfig and filters."""

    def test_audit_logger_is_bare_json(self):
        config = get_logging_config("debug")

        assert config["loggers"]["kubeagentix"]["level"] == "DEBUG"
        assert config["loggers"]["kubeagentix.audit"]["handlers"] == ["audit"]
        assert config["formatters"]["audit"]["format"] == "%(message)s"

    def test_health_check_filter(self):
        health_filter = HealthCheckFilter()

        def record(name, message):
            return logging.LogRecord(name, logging.INFO, __file__, 1, message, None, None)

        assert not health_filter.filter(record("uvicorn.access", '"GET /healthz HTTP/1.1" 200'))
        assert health_filter.filter(record("uvicorn.access", '"POST /api/cli/execute HTTP/1.1" 200'))
        assert health_filter.filter(record("kubeagentix", "GET /health"))
