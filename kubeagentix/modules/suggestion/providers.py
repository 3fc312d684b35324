"""
LLM provider registry and minimal streaming clients.

The suggestion engine consumes providers only through ``stream_response``,
an async iterator of text/error chunks. The bundled clients speak the
vendors' server-sent-event streaming APIs over httpx and report transport
failures as error chunks instead of raising. They do not retry.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, Tuple

import httpx

from ...config.provider import LLMConfig

logger = logging.getLogger(__name__)

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:streamGenerateContent?alt=sse"


@dataclass
class StreamChunk:
    """One event of a provider stream."""

    type: str  # "text" or "error"
    text: Optional[str] = None
    error: Optional[str] = None


@dataclass
class StreamConfig:
    """A single-turn streaming request."""

    system_prompt: str
    messages: List[Dict[str, str]] = field(default_factory=list)
    model: Optional[str] = None
    temperature: float = 0.0
    max_tokens: int = 500


class StreamingProvider(Protocol):
    """Minimal contract the suggestion engine needs from an LLM provider."""

    id: str

    def stream_response(self, config: StreamConfig) -> AsyncIterator[StreamChunk]:
        ...


class UnknownProviderError(ValueError):
    """Raised when a provider ID is not one of the known providers."""


async def iter_sse_data(response: httpx.Response) -> AsyncIterator[str]:
    """Yield the payload of each ``data:`` line of a server-sent event stream."""
    async for line in response.aiter_lines():
        if line.startswith("data:"):
            yield line[5:].strip()


class HTTPStreamingProvider:
    """Shared SSE plumbing; subclasses describe the request and event shapes."""

    id = ""

    def __init__(
        self,
        model: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.model = model
        self.timeout = timeout
        self.transport = transport

    def _build_request(self, config: StreamConfig) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        raise NotImplementedError

    def _extract_text(self, event: Dict[str, Any]) -> Optional[str]:
        raise NotImplementedError

    def _extract_error(self, event: Dict[str, Any]) -> Optional[str]:
        error = event.get("error")
        if isinstance(error, dict):
            return error.get("message") or "Provider returned an error"
        return None

    async def stream_response(self, config: StreamConfig) -> AsyncIterator[StreamChunk]:
        """Stream text chunks for one request; failures become a single error chunk."""
        url, headers, body = self._build_request(config)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                async with client.stream("POST", url, headers=headers, json=body) as response:
                    if response.status_code >= 400:
                        detail = (await response.aread()).decode("utf-8", errors="replace")
                        logger.warning(f"{self.id} returned {response.status_code}")
                        yield StreamChunk(
                            type="error",
                            error=f"{self.id} request failed ({response.status_code}): {detail[:200]}",
                        )
                        return

                    async for data in iter_sse_data(response):
                        if data == "[DONE]":
                            break
                        try:
                            event = json.loads(data)
                        except json.JSONDecodeError:
                            logger.debug(f"Skipping non-JSON {self.id} event")
                            continue
                        if not isinstance(event, dict):
                            logger.debug(f"Skipping non-object {self.id} event")
                            continue

                        error = self._extract_error(event)
                        if error:
                            yield StreamChunk(type="error", error=error)
                            return

                        text = self._extract_text(event)
                        if text:
                            yield StreamChunk(type="text", text=text)

        except httpx.HTTPError as e:
            logger.warning(f"{self.id} request failed: {e}")
            yield StreamChunk(type="error", error=f"{self.id} request failed: {e}")


class ClaudeProvider(HTTPStreamingProvider):
    """Anthropic Messages API."""

    id = "claude"

    def __init__(
        self,
        api_key: Optional[str] = None,
        auth_token: Optional[str] = None,
        model: str = LLMConfig.claude_model,
        **kwargs,
    ):
        if not api_key and not auth_token:
            raise ValueError("Claude provider requires ANTHROPIC_API_KEY or ANTHROPIC_AUTH_TOKEN")
        super().__init__(model, **kwargs)
        self.api_key = api_key
        self.auth_token = auth_token

    def _build_request(self, config: StreamConfig) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        headers = {"anthropic-version": ANTHROPIC_VERSION, "content-type": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        else:
            headers["authorization"] = f"Bearer {self.auth_token}"
        body = {
            "model": config.model or self.model,
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
            "system": config.system_prompt,
            "messages": config.messages,
            "stream": True,
        }
        return ANTHROPIC_URL, headers, body

    def _extract_text(self, event: Dict[str, Any]) -> Optional[str]:
        if event.get("type") != "content_block_delta":
            return None
        delta = event.get("delta") or {}
        if delta.get("type") == "text_delta":
            return delta.get("text")
        return None


class OpenAIProvider(HTTPStreamingProvider):
    """OpenAI Chat Completions API."""

    id = "openai"

    def __init__(self, api_key: Optional[str] = None, model: str = LLMConfig.openai_model, **kwargs):
        if not api_key:
            raise ValueError("OpenAI provider requires OPENAI_API_KEY")
        super().__init__(model, **kwargs)
        self.api_key = api_key

    def _build_request(self, config: StreamConfig) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        headers = {"authorization": f"Bearer {self.api_key}", "content-type": "application/json"}
        body = {
            "model": config.model or self.model,
            "messages": [{"role": "system", "content": config.system_prompt}, *config.messages],
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
            "stream": True,
        }
        return OPENAI_URL, headers, body

    def _extract_text(self, event: Dict[str, Any]) -> Optional[str]:
        choices = event.get("choices") or []
        if not choices:
            return None
        return (choices[0].get("delta") or {}).get("content")


class GeminiProvider(HTTPStreamingProvider):
    """Google Gemini ``streamGenerateContent`` API."""

    id = "gemini"

    def __init__(self, api_key: Optional[str] = None, model: str = LLMConfig.gemini_model, **kwargs):
        if not api_key:
            raise ValueError("Gemini provider requires GOOGLE_API_KEY")
        super().__init__(model, **kwargs)
        self.api_key = api_key

    def _build_request(self, config: StreamConfig) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        headers = {"x-goog-api-key": self.api_key, "content-type": "application/json"}
        body = {
            "systemInstruction": {"parts": [{"text": config.system_prompt}]},
            "contents": [
                {
                    "role": "user" if message.get("role") == "user" else "model",
                    "parts": [{"text": message.get("content", "")}],
                }
                for message in config.messages
            ],
            "generationConfig": {
                "temperature": config.temperature,
                "maxOutputTokens": config.max_tokens,
            },
        }
        return GEMINI_URL.format(model=config.model or self.model), headers, body

    def _extract_text(self, event: Dict[str, Any]) -> Optional[str]:
        candidates = event.get("candidates") or []
        if not candidates:
            return None
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


class ProviderRegistry:
    """Builds streaming providers from configuration or request credentials."""

    PRIORITY = ("claude", "openai", "gemini")

    def __init__(
        self,
        llm_config: Optional[LLMConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.llm_config = llm_config or LLMConfig()
        self.transport = transport

    @classmethod
    def available_ids(cls) -> List[str]:
        """All provider IDs this registry knows how to build."""
        return list(cls.PRIORITY)

    def _options(self) -> Dict[str, Any]:
        return {"timeout": self.llm_config.request_timeout_seconds, "transport": self.transport}

    def create(
        self,
        provider_id: str,
        api_key: Optional[str] = None,
        auth_token: Optional[str] = None,
    ) -> StreamingProvider:
        """
        Create a specific provider.

        Raises:
            UnknownProviderError: If provider_id is not known
            ValueError: If the provider has no usable credential
        """
        config = self.llm_config
        if provider_id == "claude":
            return ClaudeProvider(
                api_key=api_key, auth_token=auth_token, model=config.claude_model, **self._options()
            )
        if provider_id == "openai":
            return OpenAIProvider(api_key=api_key, model=config.openai_model, **self._options())
        if provider_id == "gemini":
            return GeminiProvider(api_key=api_key, model=config.gemini_model, **self._options())
        raise UnknownProviderError(f"Unknown provider: {provider_id}")

    def configured(self) -> Dict[str, StreamingProvider]:
        """Providers with credentials in configuration, in priority order."""
        config = self.llm_config
        credentials = {
            "claude": {"api_key": config.anthropic_api_key, "auth_token": config.anthropic_auth_token},
            "openai": {"api_key": config.openai_api_key},
            "gemini": {"api_key": config.google_api_key},
        }

        providers: Dict[str, StreamingProvider] = {}
        for provider_id in config.configured_provider_ids:
            try:
                providers[provider_id] = self.create(provider_id, **credentials[provider_id])
            except ValueError as e:
                logger.warning(f"Failed to initialize {provider_id} provider: {e}")
        return providers
