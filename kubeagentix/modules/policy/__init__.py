"""
Policy Module - Black Box Interface

Purpose: Decide whether a raw command string may be executed
Interface: split_command(), evaluate_command_policy(), get_family()
Hidden: Unsafe-character rules, per-family allowlists, nested shell allowlist

Every command that reaches a process passes through evaluate_command_policy().
"""

from .policy import (
    ALLOWED_SHELL_COMMANDS,
    ALLOWED_SUBCOMMANDS,
    evaluate_command_policy,
    get_family,
    split_command,
)

__all__ = [
    "ALLOWED_SHELL_COMMANDS",
    "ALLOWED_SUBCOMMANDS",
    "evaluate_command_policy",
    "get_family",
    "split_command",
]
