"""
API Module - Black Box Interface

Purpose: Shared data models, typed errors and HTTP routing
Interface: Pydantic models, CommandBrokerError/CommandSuggestionError, create_cli_router()
Hidden: Status code mapping, error envelope serialization

The API module only orchestrates - it contains no business logic.
All logic is delegated to appropriate modules.
"""

from .errors import (
    BrokerErrorCode,
    CommandBrokerError,
    CommandCoreError,
    CommandSuggestionError,
    SuggestionErrorCode,
)
from .models import (
    AuditEvent,
    CommandFamily,
    ExecuteRequest,
    ExecuteResponse,
    PolicyDecision,
    PolicyEvaluation,
    SpawnSpec,
    SuggestionSource,
    SuggestRequest,
    SuggestResponse,
)

__all__ = [
    "AuditEvent",
    "BrokerErrorCode",
    "CommandBrokerError",
    "CommandCoreError",
    "CommandFamily",
    "CommandSuggestionError",
    "ExecuteRequest",
    "ExecuteResponse",
    "PolicyDecision",
    "PolicyEvaluation",
    "SpawnSpec",
    "SuggestionErrorCode",
    "SuggestionSource",
    "SuggestRequest",
    "SuggestResponse",
]
