"""
Shared pytest fixtures for KubeAgentix tests.

This module provides common fixtures including:
- ProcessMocker: Mock asyncio subprocess creation with canned responses
- FakeProvider / FakeRegistry: Scripted LLM streaming providers
- FastAPI test client utilities
"""

import asyncio
import json
import os
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Union
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from kubeagentix.modules.suggestion.providers import StreamChunk, StreamConfig, UnknownProviderError


# =============================================================================
# Subprocess Mocking Infrastructure
# =============================================================================

@dataclass
class ProcessResponse:
    """Represents a mocked child process outcome."""
    stdout: bytes = b""
    stderr: bytes = b""
    returncode: int = 0
    hang: bool = False
    ignore_sigterm: bool = False


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process."""

    def __init__(self, response: ProcessResponse):
        self.pid = 4242
        self.returncode: Optional[int] = None
        self.signals: List[str] = []
        self._response = response
        self._exited = asyncio.Event()

    def _finish(self, code: int) -> None:
        if self.returncode is None:
            self.returncode = code
        self._exited.set()

    async def communicate(self):
        if not self._response.hang:
            self._finish(self._response.returncode)
            return self._response.stdout, self._response.stderr
        await self._exited.wait()
        return b"", b""

    async def wait(self) -> int:
        if not self._response.hang:
            self._finish(self._response.returncode)
        await self._exited.wait()
        return self.returncode

    def terminate(self) -> None:
        self.signals.append("SIGTERM")
        if not self._response.ignore_sigterm:
            self._finish(-15)

    def kill(self) -> None:
        self.signals.append("SIGKILL")
        self._finish(-9)


@dataclass
class SpawnCall:
    """Record of a process spawn made during testing."""
    executable: str
    args: List[str]
    kwargs: Dict
    process: FakeProcess


class ProcessMocker:
    """
    Mock asyncio.create_subprocess_exec with pattern-matched responses.

    Usage:
        def test_get_pods(process_mocker):
            process_mocker.register("get pods", ProcessResponse(stdout=b"NAME  STATUS"))
            ...
            assert process_mocker.was_called_with("get pods")
    """

    def __init__(self):
        self._responses: List[tuple] = []
        self._default_response = ProcessResponse()
        self.spawn_error: Optional[BaseException] = None
        self.calls: List[SpawnCall] = []

    def register(self, pattern: Union[str, Pattern], response: ProcessResponse) -> "ProcessMocker":
        """Register a response for command lines matching the pattern."""
        self._responses.append((pattern, response))
        return self

    def set_default_response(self, response: ProcessResponse) -> "ProcessMocker":
        self._default_response = response
        return self

    async def create_subprocess_exec(self, executable, *args, **kwargs):
        if self.spawn_error is not None:
            raise self.spawn_error

        command_line = " ".join([executable, *args])
        response = self._default_response
        for pattern, candidate in self._responses:
            if isinstance(pattern, str) and pattern in command_line:
                response = candidate
                break
            if not isinstance(pattern, str) and pattern.search(command_line):
                response = candidate
                break

        process = FakeProcess(response)
        self.calls.append(SpawnCall(executable, list(args), kwargs, process))
        return process

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def was_called_with(self, pattern: str) -> bool:
        return any(pattern in " ".join([c.executable, *c.args]) for c in self.calls)


@pytest.fixture
def process_mocker(monkeypatch):
    """Patch subprocess creation used by the broker."""
    from kubeagentix.modules.executor import broker as broker_module

    mocker = ProcessMocker()
    monkeypatch.setattr(broker_module.asyncio, "create_subprocess_exec", mocker.create_subprocess_exec)
    return mocker


# =============================================================================
# LLM Provider Fakes
# =============================================================================

class FakeProvider:
    """Streams scripted chunks and records every request."""

    def __init__(self, text: Optional[str] = None, chunks: Optional[List[StreamChunk]] = None,
                 provider_id: str = "fake", raises: Optional[Exception] = None):
        self.id = provider_id
        self.chunks = chunks if chunks is not None else [StreamChunk(type="text", text=text or "")]
        self.raises = raises
        self.requests: List[StreamConfig] = []

    async def stream_response(self, config: StreamConfig):
        self.requests.append(config)
        for chunk in self.chunks:
            yield chunk
        if self.raises is not None:
            raise self.raises


@dataclass
class FakeRegistry:
    """Provider registry returning prebuilt fakes."""
    providers: Dict[str, FakeProvider] = field(default_factory=dict)
    created: Dict[str, FakeProvider] = field(default_factory=dict)
    create_calls: List[tuple] = field(default_factory=list)

    def configured(self) -> Dict[str, FakeProvider]:
        return dict(self.providers)

    def create(self, provider_id: str, api_key: Optional[str] = None) -> FakeProvider:
        self.create_calls.append((provider_id, api_key))
        if provider_id not in self.created:
            raise UnknownProviderError(f"Unknown provider: {provider_id}")
        return self.created[provider_id]


@pytest.fixture
def empty_registry():
    """Registry with no configured providers."""
    return FakeRegistry()


def agentic_json(command: str, **extra) -> str:
    """Build a well-formed agentic answer."""
    payload = {"command": command, "confidence": 90, "rationale": "test", "assumptions": [], "warnings": []}
    payload.update(extra)
    return json.dumps(payload)


# =============================================================================
# FastAPI Test Client
# =============================================================================

@pytest.fixture
def mock_context():
    """ServiceContext whose broker and suggestion engine are AsyncMocks."""
    from kubeagentix.config.provider import EnvConfigProvider
    from kubeagentix.context import ServiceContext

    return ServiceContext(
        config_provider=EnvConfigProvider(),
        provider_registry=MagicMock(),
        broker=MagicMock(execute=AsyncMock()),
        suggestion_engine=MagicMock(suggest=AsyncMock()),
    )


@pytest.fixture
def api_client(mock_context):
    """TestClient over an app wired to mock_context."""
    from fastapi.testclient import TestClient

    from kubeagentix.config.provider import EnvConfigProvider
    from kubeagentix.main import create_app

    app = create_app(EnvConfigProvider(), context=mock_context)
    with TestClient(app) as client:
        yield client
