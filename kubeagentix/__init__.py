"""
KubeAgentix - Kubernetes Operations Command Core

Runs cluster commands directly or from natural-language requests, with a
single policy gate in front of every operating-system process.

Architecture:
- Each module is self-contained with clear interfaces
- Modules communicate only through the shared models in modules.api
- Components are wired once at startup in context.build_context()

Modules:
- policy: Tokenizer and command policy evaluator
- executor: Family adapters and the execution broker
- suggestion: Natural-language suggestion engine and LLM providers
- api: Shared models, typed errors and HTTP routes
"""

__version__ = "1.0.0"
