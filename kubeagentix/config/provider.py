"""Configuration provider following Black Box Design principles."""
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import yaml

logger = logging.getLogger(__name__)


@dataclass
class APIConfig:
    """API configuration."""
    host: str
    port: int
    debug: bool
    log_level: str
    cors_origins: List[str]


@dataclass
class LLMConfig:
    """Credentials and model defaults for the LLM providers."""
    anthropic_api_key: Optional[str] = None
    anthropic_auth_token: Optional[str] = None
    openai_api_key: Optional[str] = None
    google_api_key: Optional[str] = None
    claude_model: str = "claude-sonnet-4-5-20250929"
    openai_model: str = "gpt-4o-mini"
    gemini_model: str = "gemini-2.5-flash"
    request_timeout_seconds: float = 30.0

    @property
    def configured_provider_ids(self) -> List[str]:
        """Provider IDs that have credentials, in priority order."""
        ids = []
        if self.anthropic_api_key or self.anthropic_auth_token:
            ids.append("claude")
        if self.openai_api_key:
            ids.append("openai")
        if self.google_api_key:
            ids.append("gemini")
        return ids


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_api_config(self) -> APIConfig:
        """Get API configuration."""
        ...

    def get_llm_config(self) -> LLMConfig:
        """Get LLM provider configuration."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_api_config(self) -> APIConfig:
        """Get API configuration from environment variables."""
        return APIConfig(
            host=os.getenv("API_HOST", "0.0.0.0"),
            port=int(os.getenv("API_PORT", "8080")),
            debug=os.getenv("API_DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            cors_origins=os.getenv("CORS_ORIGINS", "*").split(","),
        )

    def get_llm_config(self) -> LLMConfig:
        """Get LLM configuration from environment variables."""
        defaults = LLMConfig()
        return LLMConfig(
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            anthropic_auth_token=os.getenv("ANTHROPIC_AUTH_TOKEN") or None,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            google_api_key=os.getenv("GOOGLE_API_KEY") or None,
            claude_model=os.getenv("CLAUDE_MODEL", defaults.claude_model),
            openai_model=os.getenv("OPENAI_MODEL", defaults.openai_model),
            gemini_model=os.getenv("GEMINI_MODEL", defaults.gemini_model),
            request_timeout_seconds=float(
                os.getenv("LLM_REQUEST_TIMEOUT", str(defaults.request_timeout_seconds))
            ),
        )


class FileConfigProvider:
    """
    YAML file configuration layered over the environment.

    Expected layout (every key optional)::

        api:
          port: 9090
          corsOrigins: ["https://ops.example.com"]
        llm:
          claudeModel: claude-sonnet-4-5-20250929
          requestTimeoutSeconds: 20
    """

    def __init__(self, config_path: str, base: Optional[ConfigProvider] = None):
        self.config_path = Path(config_path)
        self.base = base or EnvConfigProvider()
        self._data = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            logger.warning(f"Config file not found: {self.config_path}, using environment only")
            return {}

        with open(self.config_path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config file {self.config_path} must contain a mapping")

        logger.info(f"Configuration loaded from {self.config_path}")
        return data

    @staticmethod
    def _overlay(config: Any, section: Dict[str, Any]) -> Any:
        """Apply camelCase or snake_case keys from a YAML section onto a dataclass."""
        known = {f.name for f in fields(config)}
        updates = {}
        for key, value in (section or {}).items():
            name = "".join("_" + c.lower() if c.isupper() else c for c in key)
            if name in known:
                updates[name] = value
            else:
                logger.warning(f"Ignoring unknown config key: {key}")
        return replace(config, **updates)

    def get_api_config(self) -> APIConfig:
        """Get API configuration from the file, falling back to the environment."""
        return self._overlay(self.base.get_api_config(), self._data.get("api"))

    def get_llm_config(self) -> LLMConfig:
        """Get LLM configuration from the file, falling back to the environment."""
        return self._overlay(self.base.get_llm_config(), self._data.get("llm"))


def load_config_provider() -> ConfigProvider:
    """Use KUBEAGENTIX_CONFIG when set, otherwise the environment."""
    config_path = os.getenv("KUBEAGENTIX_CONFIG")
    if config_path:
        return FileConfigProvider(config_path)
    return EnvConfigProvider()
