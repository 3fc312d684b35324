#!/usr/bin/env python3
"""
Natural-Language Command Suggestion Engine for KubeAgentix.

Turns a free-text request into exactly one command: one LLM attempt,
intent-consistency checks on its answer, a deterministic rule-table
fallback, and a final policy re-check so that nothing is ever suggested
that the broker would refuse to execute.
"""

import json
import logging
import math
import re
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, Tuple

from ..api.errors import CommandSuggestionError, SuggestionErrorCode
from ..api.models import (
    CommandFamily,
    SuggestionSource,
    SuggestRequest,
    SuggestResponse,
    TerminalContextEntry,
)
from ..policy import evaluate_command_policy
from .intents import (
    build_heuristic_plan,
    build_intent_context,
    command_matches_non_running_pods,
    command_matches_pods_deployments,
    extract_namespace_from_context,
    has_diagnostic_intent,
    has_non_running_pods_intent,
    has_pods_deployments_intent,
    is_generic_inventory_command,
    normalize_command,
)
from .providers import ProviderRegistry, StreamConfig, StreamingProvider

logger = logging.getLogger(__name__)

DEFAULT_AGENTIC_CONFIDENCE = 85
MAX_CONTEXT_ENTRIES = 4
MAX_CONTEXT_CHARS = 1200

NO_PROVIDER_WARNING = "No LLM provider configured, using heuristic fallback."

SYSTEM_PROMPT = "You generate safe kubectl command suggestions. Return strict JSON only."

PROMPT_RULES = [
    "Convert this natural language Kubernetes request into ONE safe kubectl read-only command.",
    "Return STRICT JSON only with schema:",
    '{"command":"string","confidence":0,"rationale":"string","assumptions":["string"],"warnings":["string"]}',
    "Rules:",
    "- command must start with 'kubectl'",
    "- allowed subcommands: get, describe, logs, top, events, api-resources, cluster-info, version, config, explain",
    "- never include shell operators (; | && || > < ` $() ${})",
    "- prefer explicit namespace when relevant",
]

FENCED_JSON_PATTERN = re.compile(r"```json\s*(.*?)```", re.IGNORECASE | re.DOTALL)


class ProviderSource(Protocol):
    """What the engine needs from a provider registry."""

    def create(self, provider_id: str, api_key: Optional[str] = None) -> StreamingProvider:
        ...

    def configured(self) -> dict:
        ...


@dataclass
class SuggestionCandidate:
    """Parsed LLM answer."""

    command: str
    confidence: Any = None
    rationale: Optional[str] = None
    assumptions: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class SuggestionPlan:
    """A suggestion before the final policy check."""

    query: str
    suggested_command: str
    source: SuggestionSource
    confidence: int
    rationale: str
    assumptions: List[str]
    warnings: List[str]


def clamp_confidence(value: Any, fallback: int) -> int:
    """Round half up to an integer in [0, 100]; non-numeric values use ``fallback``."""
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(parsed):
        return fallback
    return max(0, min(100, math.floor(parsed + 0.5)))


def _as_str_list(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(item) for item in value]
    return []


def extract_json_candidate(raw: str) -> Optional[SuggestionCandidate]:
    """
    Parse an LLM answer defensively.

    Tries, in order: the whole text as JSON, a fenced ```json block, and the
    substring between the first ``{`` and the last ``}``.
    """
    if not raw or not raw.strip():
        return None

    attempts = [raw.strip()]
    fenced = FENCED_JSON_PATTERN.search(raw)
    if fenced:
        attempts.append(fenced.group(1).strip())
    start, end = raw.find("{"), raw.rfind("}")
    if start >= 0 and end > start:
        attempts.append(raw[start : end + 1])

    for attempt in attempts:
        try:
            parsed = json.loads(attempt)
        except json.JSONDecodeError:
            continue
        if not isinstance(parsed, dict):
            continue
        command = parsed.get("command")
        if not command or not isinstance(command, str):
            continue
        return SuggestionCandidate(
            command=command.strip(),
            confidence=parsed.get("confidence"),
            rationale=parsed.get("rationale") if isinstance(parsed.get("rationale"), str) else None,
            assumptions=_as_str_list(parsed.get("assumptions")),
            warnings=_as_str_list(parsed.get("warnings")),
        )

    return None


def format_recent_context(entries: List[TerminalContextEntry]) -> str:
    """Render the last few terminal entries for the prompt."""
    if not entries:
        return "none"
    lines = []
    for entry in entries[-MAX_CONTEXT_ENTRIES:]:
        content = re.sub(r"\s+", " ", entry.content).strip()[:MAX_CONTEXT_CHARS]
        lines.append(f"{entry.type.upper()}: {content}")
    return "\n".join(lines)


class CommandSuggestionEngine:
    """Stateless per call; safe to share between concurrent requests."""

    def __init__(self, provider_registry: Optional[ProviderSource] = None):
        self.provider_registry = provider_registry or ProviderRegistry()

    async def suggest(self, request: SuggestRequest) -> SuggestResponse:
        """
        Suggest one command for a natural-language query.

        Args:
            request: Query plus namespace, context and model preferences

        Returns:
            SuggestResponse whose command satisfies the command policy

        Raises:
            CommandSuggestionError: For every failure path
        """
        query = (request.query or "").strip()
        if not query:
            raise CommandSuggestionError(
                SuggestionErrorCode.SUGGESTION_INVALID,
                "Natural language query is required.",
                False,
            )

        try:
            plan = await self._plan(request, query)
        except CommandSuggestionError:
            raise
        except Exception as e:
            logger.exception(f"Suggestion failed: {e}")
            raise CommandSuggestionError(
                SuggestionErrorCode.SUGGESTION_FAILED,
                f"Failed to generate suggestion: {e}",
                True,
            ) from e

        final = evaluate_command_policy(plan.suggested_command).decision
        if not final.allowed:
            logger.error(f"Suggestion rejected by final policy check: {final.reason}")
            raise CommandSuggestionError(
                SuggestionErrorCode.SUGGESTION_BLOCKED,
                final.reason or "Suggested command blocked by policy.",
                False,
                final,
            )

        return SuggestResponse(
            query=plan.query,
            suggested_command=plan.suggested_command,
            source=plan.source,
            confidence=plan.confidence,
            rationale=plan.rationale,
            assumptions=plan.assumptions,
            warnings=plan.warnings,
            policy_decision=final,
            generated_at=int(time.time() * 1000),
        )

    async def _plan(self, request: SuggestRequest, query: str) -> SuggestionPlan:
        context_namespace = extract_namespace_from_context(request.recent_terminal_context)
        default_namespace = (
            context_namespace or request.namespace or request.working_namespace or "default"
        )
        intent = build_intent_context(query, default_namespace, context_namespace)

        warnings: List[str] = []
        candidate, warning = await self._attempt_agentic(request, query, default_namespace)
        if warning:
            warnings.append(warning)

        if candidate:
            rejection = self._check_candidate(candidate, intent.normalized)
            if rejection:
                logger.info(f"Agentic candidate discarded: {rejection}")
                warnings.append(rejection)
            else:
                return SuggestionPlan(
                    query=query,
                    suggested_command=candidate.command,
                    source=SuggestionSource.AGENTIC,
                    confidence=clamp_confidence(candidate.confidence, DEFAULT_AGENTIC_CONFIDENCE),
                    rationale=candidate.rationale
                    or "Generated from natural language intent using configured LLM.",
                    assumptions=candidate.assumptions,
                    warnings=[*warnings, *candidate.warnings],
                )

        heuristic = build_heuristic_plan(intent)
        if heuristic is None:
            raise CommandSuggestionError(
                SuggestionErrorCode.SUGGESTION_UNAVAILABLE,
                "This looks like a diagnosis question. "
                "Please switch to the Chat panel for RCA guidance.",
                False,
            )

        logger.debug(f"Heuristic rule matched: {heuristic.rule}")
        return SuggestionPlan(
            query=query,
            suggested_command=heuristic.command,
            source=SuggestionSource.HEURISTIC,
            confidence=heuristic.confidence,
            rationale=heuristic.rationale,
            assumptions=heuristic.assumptions,
            warnings=[*warnings, *heuristic.warnings],
        )

    def _check_candidate(self, candidate: SuggestionCandidate, normalized: str) -> Optional[str]:
        """Return a warning when the candidate must be discarded, else None."""
        command = candidate.command

        if has_non_running_pods_intent(normalized) and not command_matches_non_running_pods(command):
            return (
                "Agentic suggestion did not match non-running pod intent; "
                "using deterministic fallback."
            )

        if has_pods_deployments_intent(normalized) and not command_matches_pods_deployments(command):
            return (
                "Agentic suggestion did not include both pods and deployments; "
                "using deterministic fallback."
            )

        if has_diagnostic_intent(normalized) and is_generic_inventory_command(command):
            return "Diagnostic intent detected; generic inventory command is not sufficient."

        decision = evaluate_command_policy(command).decision
        if not decision.allowed:
            return f"Agentic suggestion blocked by policy: {decision.reason or 'blocked'}"
        if decision.family is not CommandFamily.KUBECTL:
            return "Agentic suggestion blocked by policy: not a kubectl command"

        return None

    def _choose_provider(
        self, request: SuggestRequest
    ) -> Tuple[Optional[StreamingProvider], Optional[str]]:
        prefs = request.model_preferences

        if prefs and prefs.provider_id and prefs.api_key:
            try:
                return self.provider_registry.create(prefs.provider_id, prefs.api_key), None
            except ValueError as e:
                return None, f"Agentic suggestion unavailable: {e}"

        providers = self.provider_registry.configured()
        if not providers:
            return None, NO_PROVIDER_WARNING

        if prefs and prefs.provider_id and prefs.provider_id in providers:
            return providers[prefs.provider_id], None

        for provider_id in ProviderRegistry.PRIORITY:
            if provider_id in providers:
                return providers[provider_id], None

        return next(iter(providers.values())), None

    async def _attempt_agentic(
        self, request: SuggestRequest, query: str, default_namespace: str
    ) -> Tuple[Optional[SuggestionCandidate], Optional[str]]:
        """One streaming LLM call; returns (candidate, warning)."""
        provider, warning = self._choose_provider(request)
        if provider is None:
            return None, warning or "No provider available."

        cluster_context = request.cluster_context or request.context or "current"
        user_prompt = "\n".join(
            [
                *PROMPT_RULES,
                "",
                f"Default namespace: {default_namespace}",
                f"Cluster context: {cluster_context}",
                "Recent terminal context (last commands/results):",
                format_recent_context(request.recent_terminal_context),
                f"User query: {query}",
            ]
        )
        prefs = request.model_preferences
        config = StreamConfig(
            system_prompt=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": user_prompt}],
            model=prefs.model if prefs else None,
            temperature=0.0,
            max_tokens=500,
        )

        logger.info(f"Requesting agentic suggestion from {getattr(provider, 'id', 'provider')}")
        parts: List[str] = []
        async for chunk in provider.stream_response(config):
            if chunk.type == "error":
                return None, f"Agentic suggestion failed: {chunk.error or 'provider error'}"
            if chunk.type == "text" and chunk.text:
                parts.append(chunk.text)

        candidate = extract_json_candidate("".join(parts))
        if candidate is None:
            return None, "Agentic output was not parseable JSON."

        candidate.command = normalize_command(candidate.command)
        if not candidate.command.startswith("kubectl "):
            return None, "Agentic suggestion was rejected because it was not a kubectl command."

        return candidate, None
