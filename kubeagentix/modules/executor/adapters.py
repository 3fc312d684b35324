"""
Family adapters: turn policy-approved tokens into a spawn specification.

Adapters never re-parse the raw command string; they only receive the
token list produced by the policy evaluator.
"""

from typing import List, Optional, Protocol

from ..api.models import CommandFamily, SpawnSpec


class CommandAdapter(Protocol):
    """Per-family transform from tokens to executable + args."""

    family: CommandFamily

    def build(self, tokens: List[str], cluster_context: Optional[str] = None) -> SpawnSpec:
        ...


class KubectlAdapter:
    """kubectl, optionally scoped to a cluster context."""

    family = CommandFamily.KUBECTL

    def build(self, tokens: List[str], cluster_context: Optional[str] = None) -> SpawnSpec:
        args = tokens[1:]
        has_explicit_context = any(
            arg == "--context" or arg.startswith("--context=") for arg in args
        )
        # Context-definition commands must not be scoped to a context
        is_config_command = len(tokens) > 1 and tokens[1] == "config"

        if cluster_context and not has_explicit_context and not is_config_command:
            return SpawnSpec(executable="kubectl", args=["--context", cluster_context, *args])

        return SpawnSpec(executable="kubectl", args=args)


class DockerAdapter:
    family = CommandFamily.DOCKER

    def build(self, tokens: List[str], cluster_context: Optional[str] = None) -> SpawnSpec:
        return SpawnSpec(executable="docker", args=tokens[1:])


class GitAdapter:
    family = CommandFamily.GIT

    def build(self, tokens: List[str], cluster_context: Optional[str] = None) -> SpawnSpec:
        return SpawnSpec(executable="git", args=tokens[1:])


class ShellAdapter:
    """`sh -c` / `bash -c`; keeps the interpreter the operator asked for."""

    family = CommandFamily.SH

    def build(self, tokens: List[str], cluster_context: Optional[str] = None) -> SpawnSpec:
        executable = "bash" if tokens and tokens[0] == "bash" else "sh"
        return SpawnSpec(executable=executable, args=tokens[1:])


KUBECTL_ADAPTER = KubectlAdapter()
DOCKER_ADAPTER = DockerAdapter()
GIT_ADAPTER = GitAdapter()
SHELL_ADAPTER = ShellAdapter()


def get_adapter(family: Optional[CommandFamily]) -> Optional[CommandAdapter]:
    """
    Resolve the adapter for a command family.

    Dispatch is exhaustive over CommandFamily; anything else (including a
    missing family) resolves to None.
    """
    if family is CommandFamily.KUBECTL:
        return KUBECTL_ADAPTER
    if family is CommandFamily.DOCKER:
        return DOCKER_ADAPTER
    if family is CommandFamily.GIT:
        return GIT_ADAPTER
    if family is CommandFamily.SH:
        return SHELL_ADAPTER
    return None


def build_spawn_spec(
    family: CommandFamily, tokens: List[str], cluster_context: Optional[str] = None
) -> SpawnSpec:
    """Build a spawn spec, passing the cluster context to kubectl only."""
    adapter = get_adapter(family)
    if adapter is None:
        raise ValueError(f"No adapter for command family: {family}")
    if family is not CommandFamily.KUBECTL:
        cluster_context = None
    return adapter.build(tokens, cluster_context=cluster_context)
