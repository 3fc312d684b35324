"""
KubeAgentix shared data models.

These models define the structure of all data passed between
components in the command core. The HTTP surface speaks camelCase
(``timeoutMs``, ``policyDecision``), Python code uses snake_case; both
spellings are accepted on input.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Enums


class CommandFamily(str, Enum):
    """Coarse command category selecting an allowlist and an adapter."""

    KUBECTL = "kubectl"
    DOCKER = "docker"
    GIT = "git"
    SH = "sh"


class SuggestionSource(str, Enum):
    """Where a suggested command came from."""

    HEURISTIC = "heuristic"
    AGENTIC = "agentic"


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Policy / execution internals


class PolicyDecision(CamelModel):
    """Allow/deny verdict computed once per raw command string."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    allowed: bool
    family: Optional[CommandFamily] = None
    subcommand: Optional[str] = None
    reason: Optional[str] = None
    matched_rule: Optional[str] = None


class PolicyEvaluation(BaseModel):
    """A policy decision together with the tokens it was computed from."""

    model_config = ConfigDict(frozen=True)

    decision: PolicyDecision
    tokens: List[str] = Field(default_factory=list)


class SpawnSpec(BaseModel):
    """Executable plus argument list, built only from allowed tokens."""

    model_config = ConfigDict(frozen=True)

    executable: str
    args: List[str] = Field(default_factory=list)


class AuditEvent(CamelModel):
    """One record per completed execution attempt."""

    command: str
    family: Optional[CommandFamily] = None
    subcommand: Optional[str] = None
    started_at: int = Field(..., description="Epoch milliseconds")
    duration_ms: int
    exit_code: int
    allowed: bool = True


# Request Models (API Input)


class ExecuteRequest(CamelModel):
    """Request to run one command through the broker."""

    command: Optional[str] = Field(None, description="Raw command line")
    timeout_ms: Optional[float] = Field(None, description="Wall-clock budget, clamped to 1s..60s")
    max_output_bytes: Optional[float] = Field(
        None, description="Per-stream output cap, clamped to 256KiB..5MiB"
    )
    cluster_context: Optional[str] = Field(None, description="kubectl context to scope to")
    context: Optional[str] = Field(None, description="Legacy spelling of clusterContext")
    namespace: Optional[str] = None


class TerminalContextEntry(CamelModel):
    """A line from the operator's recent terminal history."""

    type: str = Field(..., description="input, output, error or system")
    content: str = ""


class ModelPreferences(CamelModel):
    """Caller preferences for the LLM used by agentic suggestions."""

    provider_id: Optional[str] = None
    api_key: Optional[str] = None
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class SuggestRequest(CamelModel):
    """Request to turn a natural-language query into one command."""

    query: Optional[str] = None
    namespace: Optional[str] = None
    working_namespace: Optional[str] = None
    cluster_context: Optional[str] = None
    context: Optional[str] = None
    model_preferences: Optional[ModelPreferences] = None
    recent_terminal_context: List[TerminalContextEntry] = Field(default_factory=list)


# Response Models (API Output)


class ExecuteResponse(CamelModel):
    """Result of a completed (non-timed-out) execution."""

    stdout: str
    stderr: str
    exit_code: int
    executed_at: int = Field(..., description="Epoch milliseconds when execution started")
    duration_ms: int
    policy_decision: PolicyDecision
    truncated: bool = False


class SuggestResponse(CamelModel):
    """A single policy-approved command suggestion."""

    query: str
    suggested_command: str
    source: SuggestionSource
    confidence: int = Field(..., ge=0, le=100)
    rationale: str
    assumptions: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    policy_decision: PolicyDecision
    generated_at: int = Field(..., description="Epoch milliseconds")


class ErrorDetail(CamelModel):
    """Typed error payload returned by the HTTP surface."""

    code: str
    message: str
    retryable: bool
    policy_decision: Optional[PolicyDecision] = None


class ErrorResponse(CamelModel):
    """Error envelope: ``{"error": {...}}``."""

    error: ErrorDetail

    def to_json(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, omitting an absent policy decision."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
