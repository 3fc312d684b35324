#!/usr/bin/env python3
"""
Command Policy Evaluator for KubeAgentix.

Tokenizes raw command strings and decides whether they may ever reach an
operating-system process. Allowlists are static and cannot be changed at
runtime.
"""

import logging
import re
from typing import List, Optional

from ..api.models import CommandFamily, PolicyDecision, PolicyEvaluation

logger = logging.getLogger(__name__)

# Checked against the raw string before tokenization so metacharacters
# hidden inside quoted tokens are still caught.
UNSAFE_PATTERN = re.compile(r"[;&|`<>\n\r]")
VARIABLE_SUBSTITUTION_PATTERN = re.compile(r"\$\(|\$\{|`")

TOKEN_PATTERN = re.compile(r"""(?:[^\s"']+|"[^"]*"|'[^']*')+""")

ALLOWED_SUBCOMMANDS = {
    CommandFamily.KUBECTL: frozenset(
        {
            "get",
            "describe",
            "logs",
            "top",
            "events",
            "api-resources",
            "cluster-info",
            "version",
            "config",
            "explain",
        }
    ),
    CommandFamily.DOCKER: frozenset({"ps", "logs", "images", "inspect", "stats", "version", "info"}),
    CommandFamily.GIT: frozenset({"status", "log", "show", "diff", "branch", "rev-parse", "remote"}),
    CommandFamily.SH: frozenset({"-c"}),
}

# First word of an `sh -c` body
ALLOWED_SHELL_COMMANDS = frozenset({"ls", "pwd", "echo", "cat", "kubectl", "git", "docker"})

SUPPORTED_BINARIES = frozenset({"kubectl", "docker", "git", "sh", "bash"})


def _unquote(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in ("'", '"'):
        return token[1:-1]
    return token


def split_command(command: str) -> List[str]:
    """
    Split a command line on whitespace, keeping quoted groups together.

    Surrounding quote characters are stripped from each token; empty
    tokens are dropped.

    Args:
        command: Raw command line

    Returns:
        List of tokens
    """
    tokens = (_unquote(match.strip()) for match in TOKEN_PATTERN.findall(command))
    return [token for token in tokens if token]


def get_family(binary: str) -> Optional[CommandFamily]:
    """Map a binary name to its command family."""
    if binary in ("bash", "sh"):
        return CommandFamily.SH
    if binary == "kubectl":
        return CommandFamily.KUBECTL
    if binary == "docker":
        return CommandFamily.DOCKER
    if binary == "git":
        return CommandFamily.GIT
    return None


def _is_shell_command_allowed(shell_body: str) -> bool:
    head = split_command(shell_body)
    return bool(head) and head[0] in ALLOWED_SHELL_COMMANDS


def _deny(reason: str, tokens: List[str], **fields) -> PolicyEvaluation:
    return PolicyEvaluation(
        decision=PolicyDecision(allowed=False, reason=reason, **fields),
        tokens=tokens,
    )


def evaluate_command_policy(command: Optional[str]) -> PolicyEvaluation:
    """
    Evaluate a raw command string against the command policy.

    Args:
        command: Raw command line as typed, generated or templated

    Returns:
        PolicyEvaluation with the decision and the tokens it was based on
    """
    trimmed = (command or "").strip()
    if not trimmed:
        return _deny("Command is empty", [])

    if UNSAFE_PATTERN.search(trimmed) or VARIABLE_SUBSTITUTION_PATTERN.search(trimmed):
        logger.debug("Rejected command with shell operators")
        return _deny("Command contains unsafe shell operators", [])

    tokens = split_command(trimmed)
    if not tokens:
        return _deny("Command is empty", tokens)

    binary = tokens[0]
    if binary not in SUPPORTED_BINARIES:
        return _deny(f"Unsupported binary: {binary}", tokens)

    family = get_family(binary)
    if family is None:
        return _deny(f"Unsupported command family for {binary}", tokens)

    subcommand = tokens[1] if len(tokens) > 1 else ""
    if subcommand not in ALLOWED_SUBCOMMANDS[family]:
        return _deny(
            f"Subcommand not allowed: {subcommand or '<none>'}",
            tokens,
            family=family,
            subcommand=subcommand,
        )

    if family is CommandFamily.SH:
        shell_body = " ".join(tokens[2:]).strip()
        if not shell_body:
            return _deny(
                "Shell command body is required", tokens, family=family, subcommand=subcommand
            )
        if not _is_shell_command_allowed(shell_body):
            return _deny(
                "Shell command not in allowlist", tokens, family=family, subcommand=subcommand
            )

    return PolicyEvaluation(
        decision=PolicyDecision(
            allowed=True,
            family=family,
            subcommand=subcommand,
            matched_rule=f"{family.value}:{subcommand}",
        ),
        tokens=tokens,
    )
