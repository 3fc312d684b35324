"""
Executor Module - Black Box Interface

Purpose: Run policy-approved commands as bounded OS subprocesses
Interface: CommandBroker.execute(), build_spawn_spec(), get_adapter()
Hidden: Adapter selection, process lifecycle, redaction, truncation, audit

The terminal route, runbook step executor and incident action executor all
share CommandBroker.execute(), so they inherit identical policy guarantees.
"""

from .adapters import (
    DockerAdapter,
    GitAdapter,
    KubectlAdapter,
    ShellAdapter,
    build_spawn_spec,
    get_adapter,
)
from .broker import (
    CommandBroker,
    clamp_output_limit,
    clamp_timeout,
    log_audit_event,
    redact_sensitive_output,
    truncate_output,
)

__all__ = [
    "CommandBroker",
    "DockerAdapter",
    "GitAdapter",
    "KubectlAdapter",
    "ShellAdapter",
    "build_spawn_spec",
    "clamp_output_limit",
    "clamp_timeout",
    "get_adapter",
    "log_audit_event",
    "redact_sensitive_output",
    "truncate_output",
]
