#!/usr/bin/env python3
"""
Intent detection and the deterministic heuristic rule table.

Queries are normalized once (lowercase, common typos fixed, whitespace
collapsed) and matched against an ordered table of HeuristicRule entries;
the first rule whose predicate holds produces the suggestion.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

from ..api.models import TerminalContextEntry

HEURISTIC_WARNING = "Heuristic fallback used."
AMBIGUOUS_WARNING = "Intent was ambiguous."

NON_RUNNING_PODS_COMMAND = "kubectl get pods -A --field-selector=status.phase!=Running"

TYPO_FIXES = [
    (re.compile(r"\blsit\b"), "list"),
    (re.compile(r"\brunnig\b"), "running"),
    (re.compile(r"\bnameapce\b"), "namespace"),
    (re.compile(r"\bnamesapce\b"), "namespace"),
    (re.compile(r"\bnmespace\b"), "namespace"),
    (re.compile(r"\bdeplyoment\b"), "deployment"),
    (re.compile(r"\bdeplyoments\b"), "deployments"),
    (re.compile(r"\bdeployemnt\b"), "deployment"),
    (re.compile(r"\bdeployemnts\b"), "deployments"),
    (re.compile(r"\bservcies\b"), "services"),
]

CLUSTER_WIDE_PHRASES = (
    "all namespaces",
    "all ns",
    "in the cluster",
    "across the cluster",
    "whole cluster",
)

NON_RUNNING_PHRASES = (
    "non-running",
    "non running",
    "not running",
    "failing pod",
    "failed pod",
    "crashloop",
    "pending pod",
    "not healthy",
)

DIAGNOSTIC_PHRASES = (
    "what's wrong",
    "whats wrong",
    "what is wrong",
    "why is",
    "why are",
    "diagnose",
    "diagnosis",
    "root cause",
    "rca",
    "how to fix",
    "fix this",
)

GENERIC_INVENTORY_PREFIXES = (
    "kubectl get pods",
    "kubectl get deployments",
    "kubectl get services",
    "kubectl get namespaces",
    "kubectl get nodes",
    "kubectl get pods,deployments",
    "kubectl get deployment,pod",
)

HERE_PATTERN = re.compile(r"\bhere\b|\bcurrent namespace\b|\bin this namespace\b")

# Words that follow "in"/"for" without naming a namespace
NAMESPACE_STOPWORDS = frozenset({"the", "this", "that", "my", "our", "a", "an"})

IN_NAMESPACE_PATTERN = re.compile(r"\bin\s+([a-z0-9-]+)\s+namespace\b")
IN_PLAIN_PATTERN = re.compile(r"\b(?:in|ind)\s+([a-z0-9-]+)\b")
NAMESPACE_NAMED_PATTERN = re.compile(r"\bnamespace\s+([a-z0-9-]+)\b")
FOR_PATTERN = re.compile(r"\bfor\s+([a-z0-9-]+)\b")
NOT_RUNNING_PATTERN = re.compile(r"\bnot\s+runn\w*\b")
SHORT_NAMESPACE_FLAG = re.compile(r"(?:^|\s)-n\s+([a-z0-9-]+)", re.IGNORECASE)
LONG_NAMESPACE_FLAG = re.compile(r"(?:^|\s)--namespace(?:=|\s+)([a-z0-9-]+)", re.IGNORECASE)
POD_NAME_PATTERNS = (
    re.compile(r"\bpod\s+([a-z0-9][a-z0-9-]*)\b"),
    re.compile(r"\blogs?\s+for\s+([a-z0-9][a-z0-9-]*)\b"),
)


def normalize_intent_text(query: str) -> str:
    """Lowercase, fix common typos and collapse whitespace."""
    text = query.lower()
    for pattern, replacement in TYPO_FIXES:
        text = pattern.sub(replacement, text)
    return re.sub(r"\s+", " ", text).strip()


def normalize_command(command: str) -> str:
    """Collapse whitespace in a command line."""
    return re.sub(r"\s+", " ", command).strip()


def extract_namespace(normalized: str, fallback: str) -> str:
    """
    Find the namespace a normalized query refers to.

    Returns "all" for cluster-wide phrasing, otherwise the first of
    "in X namespace", "in X", "namespace X", "for X", else ``fallback``.
    """
    if any(phrase in normalized for phrase in CLUSTER_WIDE_PHRASES):
        return "all"

    for pattern in (IN_NAMESPACE_PATTERN, IN_PLAIN_PATTERN, NAMESPACE_NAMED_PATTERN, FOR_PATTERN):
        match = pattern.search(normalized)
        if match and match.group(1) not in NAMESPACE_STOPWORDS:
            return match.group(1)

    return fallback


def extract_namespace_from_context(entries: Sequence[TerminalContextEntry]) -> Optional[str]:
    """Namespace flag of the most recent kubectl command typed in the terminal."""
    for entry in reversed(entries or []):
        if entry.type != "input":
            continue

        command = re.sub(r"^[>$]\s*", "", entry.content).strip()
        if not command.startswith("kubectl "):
            continue

        match = SHORT_NAMESPACE_FLAG.search(command) or LONG_NAMESPACE_FLAG.search(command)
        if match:
            return match.group(1).lower()

    return None


# Intent predicates over normalized query text


def has_pods_intent(normalized: str) -> bool:
    return "pod" in normalized


def has_non_running_pods_intent(normalized: str) -> bool:
    return has_pods_intent(normalized) and (
        any(phrase in normalized for phrase in NON_RUNNING_PHRASES)
        or bool(NOT_RUNNING_PATTERN.search(normalized))
    )


def has_pods_deployments_intent(normalized: str) -> bool:
    return has_pods_intent(normalized) and "deployment" in normalized


def has_diagnostic_intent(normalized: str) -> bool:
    """Questions that need the conversational RCA flow rather than one command."""
    return any(phrase in normalized for phrase in DIAGNOSTIC_PHRASES)


def has_namespace_discovery_intent(normalized: str) -> bool:
    return (
        ("namespace" in normalized and "access" in normalized)
        or "which namespaces" in normalized
        or "namespaces can i" in normalized
    )


def has_warning_events_intent(normalized: str) -> bool:
    return (
        "event" in normalized
        and "warning" in normalized
        and "all events" not in normalized
        and "events all" not in normalized
    )


# Candidate command checks


def command_matches_non_running_pods(command: str) -> bool:
    normalized = normalize_command(command).lower()
    return normalized.startswith("kubectl get pods") and (
        "--field-selector=status.phase!=running" in normalized
    )


def command_matches_pods_deployments(command: str) -> bool:
    normalized = normalize_command(command).lower()
    return normalized.startswith("kubectl get pods,deployments") or normalized.startswith(
        "kubectl get deployment,pod"
    )


def is_generic_inventory_command(command: str) -> bool:
    normalized = normalize_command(command).lower()
    return any(normalized.startswith(prefix) for prefix in GENERIC_INVENTORY_PREFIXES)


# Heuristic rule table


class NamespaceSource(Enum):
    """How a rule picks the namespace its template is scoped to."""

    NONE = "none"  # cluster-scoped or fixed command
    QUERY = "query"  # namespace named in the query (or the default)
    QUERY_OR_HERE = "query_or_here"  # "here" reuses the terminal's last -n
    LOGS = "logs"  # like QUERY, but "all" is not valid for logs


@dataclass
class IntentContext:
    """Everything the rule table needs about one query."""

    query: str
    normalized: str
    namespace: str
    context_namespace: Optional[str] = None
    assumptions: List[str] = field(default_factory=list)

    @property
    def log_target(self) -> Optional[str]:
        for pattern in POD_NAME_PATTERNS:
            match = pattern.search(self.normalized)
            if match:
                return match.group(1)
        return None


@dataclass
class HeuristicPlan:
    """A deterministic suggestion produced by the rule table."""

    rule: str
    command: str
    confidence: int
    rationale: str
    assumptions: List[str]
    warnings: List[str]


@dataclass(frozen=True)
class HeuristicRule:
    """
    One row of the rule table.

    ``template`` may reference ``{scope}`` ("-A" or "-n <ns>"),
    ``{namespace}`` and ``{pod}``.
    """

    name: str
    predicate: Callable[[IntentContext], bool]
    namespace_source: NamespaceSource
    template: str
    confidence: int
    rationale: str
    keep_assumptions: bool = True
    extra_warnings: Sequence[str] = ()

    def render(self, ctx: IntentContext) -> HeuristicPlan:
        assumptions = list(ctx.assumptions) if self.keep_assumptions else []
        namespace = ctx.namespace

        if self.namespace_source is NamespaceSource.QUERY_OR_HERE:
            if ctx.context_namespace and HERE_PATTERN.search(ctx.normalized):
                namespace = ctx.context_namespace
        elif self.namespace_source is NamespaceSource.LOGS and namespace == "all":
            namespace = "default"
            assumptions.append(
                "Defaulted to namespace 'default' for pod logs. "
                "Specify namespace for exact pod lookup."
            )

        scope = "-A" if namespace == "all" else f"-n {namespace}"
        command = self.template.format(scope=scope, namespace=namespace, pod=ctx.log_target)
        return HeuristicPlan(
            rule=self.name,
            command=command,
            confidence=self.confidence,
            rationale=self.rationale,
            assumptions=assumptions,
            warnings=[HEURISTIC_WARNING, *self.extra_warnings],
        )


HEURISTIC_RULES = (
    HeuristicRule(
        name="pods-and-deployments",
        predicate=lambda ctx: has_pods_deployments_intent(ctx.normalized),
        namespace_source=NamespaceSource.QUERY,
        template="kubectl get pods,deployments {scope}",
        confidence=88,
        rationale="Detected combined pods and deployments inventory intent.",
    ),
    HeuristicRule(
        name="non-running-pods",
        predicate=lambda ctx: has_non_running_pods_intent(ctx.normalized),
        namespace_source=NamespaceSource.NONE,
        template=NON_RUNNING_PODS_COMMAND,
        confidence=90,
        rationale="Detected request for non-running pods across namespaces.",
        keep_assumptions=False,
    ),
    HeuristicRule(
        name="namespace-discovery",
        predicate=lambda ctx: has_namespace_discovery_intent(ctx.normalized),
        namespace_source=NamespaceSource.NONE,
        template="kubectl get namespaces",
        confidence=92,
        rationale="Namespace discovery intent matched.",
        keep_assumptions=False,
    ),
    HeuristicRule(
        name="warning-events",
        predicate=lambda ctx: has_warning_events_intent(ctx.normalized),
        namespace_source=NamespaceSource.QUERY,
        template="kubectl get events {scope} --field-selector type=Warning",
        confidence=86,
        rationale="Detected warning event lookup intent.",
    ),
    HeuristicRule(
        name="events",
        predicate=lambda ctx: "event" in ctx.normalized,
        namespace_source=NamespaceSource.QUERY,
        template="kubectl get events {scope}",
        confidence=86,
        rationale="Detected event listing intent.",
    ),
    HeuristicRule(
        name="deployments",
        predicate=lambda ctx: "deployment" in ctx.normalized,
        namespace_source=NamespaceSource.QUERY,
        template="kubectl get deployments {scope}",
        confidence=85,
        rationale="Detected deployment listing intent.",
    ),
    HeuristicRule(
        name="services",
        predicate=lambda ctx: "service" in ctx.normalized,
        namespace_source=NamespaceSource.QUERY,
        template="kubectl get services {scope}",
        confidence=82,
        rationale="Detected service listing intent.",
    ),
    HeuristicRule(
        name="nodes",
        predicate=lambda ctx: "node" in ctx.normalized,
        namespace_source=NamespaceSource.NONE,
        template="kubectl get nodes",
        confidence=80,
        rationale="Detected node inventory intent.",
        keep_assumptions=False,
    ),
    HeuristicRule(
        name="pod-logs",
        predicate=lambda ctx: "log" in ctx.normalized and ctx.log_target is not None,
        namespace_source=NamespaceSource.LOGS,
        template="kubectl logs {pod} -n {namespace} --tail 100",
        confidence=78,
        rationale="Detected pod logs lookup intent.",
    ),
    HeuristicRule(
        name="pods",
        predicate=lambda ctx: has_pods_intent(ctx.normalized),
        namespace_source=NamespaceSource.QUERY_OR_HERE,
        template="kubectl get pods {scope}",
        confidence=80,
        rationale="Defaulted to pod listing for natural language request.",
    ),
    HeuristicRule(
        name="generic-pods",
        predicate=lambda ctx: True,
        namespace_source=NamespaceSource.QUERY,
        template="kubectl get pods {scope}",
        confidence=60,
        rationale="Could not infer exact intent, defaulting to safe pod listing.",
        extra_warnings=(AMBIGUOUS_WARNING,),
    ),
)


def build_intent_context(
    query: str,
    default_namespace: str,
    context_namespace: Optional[str] = None,
) -> IntentContext:
    """Normalize a query and resolve its namespace and default assumptions."""
    normalized = normalize_intent_text(query)
    namespace = extract_namespace(normalized, default_namespace)

    assumptions = []
    if namespace != "all" and namespace not in normalized:
        assumptions.append(f"Using namespace '{namespace}'.")
    if (
        context_namespace
        and namespace == context_namespace
        and context_namespace not in normalized
        and "namespace" not in normalized
    ):
        assumptions.append(
            f"Inferred namespace '{context_namespace}' from recent terminal command context."
        )

    return IntentContext(
        query=query,
        normalized=normalized,
        namespace=namespace,
        context_namespace=context_namespace,
        assumptions=assumptions,
    )


def build_heuristic_plan(
    ctx: IntentContext, rules: Sequence[HeuristicRule] = HEURISTIC_RULES
) -> Optional[HeuristicPlan]:
    """
    Evaluate the rule table top to bottom.

    Returns None for diagnostic questions, which need the conversational
    diagnosis flow instead of a single command.
    """
    if has_diagnostic_intent(ctx.normalized):
        return None

    for rule in rules:
        if rule.predicate(ctx):
            return rule.render(ctx)
    return None
