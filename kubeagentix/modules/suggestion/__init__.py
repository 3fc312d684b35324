"""
Suggestion Module - Black Box Interface

Purpose: Turn a natural-language request into one safe command
Interface: CommandSuggestionEngine.suggest(), ProviderRegistry
Hidden: Prompting, LLM answer parsing, intent checks, heuristic rule table

Every suggestion is re-validated by the policy module before it is returned.
"""

from .engine import CommandSuggestionEngine, extract_json_candidate
from .intents import HEURISTIC_RULES, HeuristicRule, build_heuristic_plan, build_intent_context
from .providers import (
    ClaudeProvider,
    GeminiProvider,
    OpenAIProvider,
    ProviderRegistry,
    StreamChunk,
    StreamConfig,
    UnknownProviderError,
)

__all__ = [
    "ClaudeProvider",
    "CommandSuggestionEngine",
    "GeminiProvider",
    "HEURISTIC_RULES",
    "HeuristicRule",
    "OpenAIProvider",
    "ProviderRegistry",
    "StreamChunk",
    "StreamConfig",
    "UnknownProviderError",
    "build_heuristic_plan",
    "build_intent_context",
    "extract_json_candidate",
]
