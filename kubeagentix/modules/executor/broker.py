#!/usr/bin/env python3
"""
Command Execution Broker for KubeAgentix.

The single entry point through which the terminal, runbook steps and
incident actions run commands. Each call evaluates policy, builds a spawn
spec through the family adapter, owns exactly one subprocess, and returns
redacted, size-bounded output.
"""

import asyncio
import json
import logging
import math
import re
import time
from typing import Callable, Optional, Tuple

from ..api.errors import BrokerErrorCode, CommandBrokerError
from ..api.models import (
    AuditEvent,
    ExecuteRequest,
    ExecuteResponse,
    PolicyDecision,
    SpawnSpec,
)
from ..policy import evaluate_command_policy
from .adapters import build_spawn_spec

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("kubeagentix.audit")

DEFAULT_MAX_OUTPUT_BYTES = 256 * 1024
MAX_ALLOWED_OUTPUT_BYTES = 5 * 1024 * 1024
DEFAULT_TIMEOUT_MS = 15_000
MIN_TIMEOUT_MS = 1_000
MAX_TIMEOUT_MS = 60_000

# Time a child gets to exit after SIGTERM before it is sent SIGKILL
KILL_GRACE_SECONDS = 2.0

TRUNCATION_SUFFIX = "\n...[TRUNCATED]"

SECRET_PATTERN = re.compile(r"((?:api[_-]?key|token|password|secret)\s*[:=]\s*)(\S+)", re.IGNORECASE)

AuditCallback = Callable[[AuditEvent], None]


def redact_sensitive_output(output: str) -> str:
    """Replace secret-shaped values (``token=...``, ``password: ...``) with [REDACTED]."""
    return SECRET_PATTERN.sub(r"\1[REDACTED]", output)


def _missing(value: Optional[float]) -> bool:
    return not value or math.isnan(value)


def clamp_timeout(timeout_ms: Optional[float]) -> int:
    """Clamp a requested timeout to [1000, 60000] ms, defaulting to 15000."""
    if _missing(timeout_ms):
        return DEFAULT_TIMEOUT_MS
    return int(min(max(timeout_ms, MIN_TIMEOUT_MS), MAX_TIMEOUT_MS))


def clamp_output_limit(max_output_bytes: Optional[float]) -> int:
    """Clamp a requested output cap to [256 KiB, 5 MiB], defaulting to 256 KiB."""
    if _missing(max_output_bytes):
        return DEFAULT_MAX_OUTPUT_BYTES
    return int(min(max(max_output_bytes, DEFAULT_MAX_OUTPUT_BYTES), MAX_ALLOWED_OUTPUT_BYTES))


def truncate_output(output: str, max_bytes: int) -> Tuple[str, bool]:
    """
    Cut output to ``max_bytes`` UTF-8 bytes.

    Returns:
        Tuple of (content, truncated); truncated content carries the
        ``"\\n...[TRUNCATED]"`` suffix.
    """
    encoded = output.encode("utf-8")
    if len(encoded) <= max_bytes:
        return output, False
    head = encoded[:max_bytes].decode("utf-8", errors="ignore")
    return head + TRUNCATION_SUFFIX, True


def resolve_cluster_context(request: ExecuteRequest) -> Optional[str]:
    """Pick the cluster context from the request, ignoring blank values."""
    candidate = request.cluster_context or request.context
    if not candidate:
        return None
    trimmed = candidate.strip()
    return trimmed or None


def log_audit_event(event: AuditEvent) -> None:
    """Default audit sink: structured JSON on the audit logger."""
    payload = event.model_dump(mode="json", by_alias=True)
    audit_logger.info(f"[command-audit] {json.dumps(payload)}")


class CommandBroker:
    """Runs policy-approved commands as bounded subprocesses."""

    def __init__(self, on_audit: Optional[AuditCallback] = None):
        """
        Initialize the broker.

        Args:
            on_audit: Called once per completed execution; defaults to
                structured logging on the ``kubeagentix.audit`` logger
        """
        self.on_audit = on_audit or log_audit_event

    async def execute(self, request: ExecuteRequest) -> ExecuteResponse:
        """
        Execute one command.

        Args:
            request: Command and execution limits

        Returns:
            ExecuteResponse with redacted, truncated output

        Raises:
            CommandBrokerError: For every failure path
        """
        try:
            return await self._execute(request)
        except CommandBrokerError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected failure executing command: {e}")
            raise CommandBrokerError(
                BrokerErrorCode.COMMAND_FAILED,
                f"Failed to execute command: {e}",
                True,
            ) from e

    async def _execute(self, request: ExecuteRequest) -> ExecuteResponse:
        started_at = int(time.time() * 1000)
        started = time.monotonic()

        evaluation = evaluate_command_policy(request.command)
        decision = evaluation.decision

        if not decision.allowed or decision.family is None:
            logger.info(f"Command blocked by policy: {decision.reason}")
            raise CommandBrokerError(
                BrokerErrorCode.COMMAND_BLOCKED,
                decision.reason or "Command blocked by policy",
                False,
                decision,
            )

        try:
            spec = build_spawn_spec(
                decision.family, evaluation.tokens, resolve_cluster_context(request)
            )
        except ValueError as e:
            raise CommandBrokerError(BrokerErrorCode.COMMAND_INVALID, str(e), False, decision) from e

        timeout_ms = clamp_timeout(request.timeout_ms)
        max_output_bytes = clamp_output_limit(request.max_output_bytes)

        raw_stdout, raw_stderr, exit_code = await self._run_process(spec, timeout_ms, decision)

        stdout, stdout_truncated = truncate_output(
            redact_sensitive_output(raw_stdout.decode("utf-8", errors="replace")), max_output_bytes
        )
        stderr, stderr_truncated = truncate_output(
            redact_sensitive_output(raw_stderr.decode("utf-8", errors="replace")), max_output_bytes
        )
        duration_ms = int((time.monotonic() - started) * 1000)

        self._emit_audit(
            AuditEvent(
                command=request.command,
                family=decision.family,
                subcommand=decision.subcommand,
                started_at=started_at,
                duration_ms=duration_ms,
                exit_code=exit_code,
                allowed=True,
            )
        )

        return ExecuteResponse(
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
            executed_at=started_at,
            duration_ms=duration_ms,
            policy_decision=decision,
            truncated=stdout_truncated or stderr_truncated,
        )

    async def _run_process(
        self, spec: SpawnSpec, timeout_ms: int, decision: PolicyDecision
    ) -> Tuple[bytes, bytes, int]:
        """
        Spawn the child and collect its output within the time budget.

        Returns:
            Tuple of (stdout, stderr, exit_code)
        """
        logger.debug(f"Running: {spec.executable} {' '.join(spec.args)}")

        try:
            process = await asyncio.create_subprocess_exec(
                spec.executable,
                *spec.args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Failed to spawn {spec.executable}: {e}")
            raise CommandBrokerError(
                BrokerErrorCode.COMMAND_FAILED,
                f"Failed to execute command: {e}",
                True,
                decision,
            ) from e

        communicate = asyncio.ensure_future(process.communicate())
        try:
            stdout, stderr = await asyncio.wait_for(
                asyncio.shield(communicate), timeout=timeout_ms / 1000
            )
        except asyncio.TimeoutError:
            logger.warning(f"Command timed out after {timeout_ms}ms, terminating pid {process.pid}")
            await self._terminate(process, communicate)
            raise CommandBrokerError(
                BrokerErrorCode.COMMAND_TIMEOUT,
                f"Command timed out after {timeout_ms}ms",
                True,
                decision,
            )
        except asyncio.CancelledError:
            logger.info(f"Execution cancelled, killing pid {process.pid}")
            _signal(process, "kill")
            communicate.cancel()
            raise

        exit_code = process.returncode if process.returncode is not None else -1
        return stdout or b"", stderr or b"", exit_code

    async def _terminate(self, process: asyncio.subprocess.Process, communicate: asyncio.Future) -> None:
        """SIGTERM, then SIGKILL if the child outlives the grace period."""
        _signal(process, "terminate")
        try:
            await asyncio.wait_for(process.wait(), timeout=KILL_GRACE_SECONDS)
        except asyncio.TimeoutError:
            logger.warning(f"pid {process.pid} ignored SIGTERM, sending SIGKILL")
            _signal(process, "kill")
            await process.wait()
        finally:
            communicate.cancel()

    def _emit_audit(self, event: AuditEvent) -> None:
        try:
            self.on_audit(event)
        except Exception as e:
            logger.error(f"Audit callback failed: {e}")


def _signal(process: asyncio.subprocess.Process, method: str) -> None:
    try:
        getattr(process, method)()
    except ProcessLookupError:
        # Already exited
        pass
