"""
Service context following Black Box Design principles.

This is the composition root that:
- Builds every command core component once at process start
- Wires dependencies together explicitly
- Is handed to request handlers instead of module-level singletons
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .config.provider import ConfigProvider
from .modules.executor import CommandBroker
from .modules.executor.broker import AuditCallback
from .modules.suggestion import CommandSuggestionEngine, ProviderRegistry

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    """Everything a handler needs to execute or suggest commands."""

    config_provider: ConfigProvider
    provider_registry: ProviderRegistry
    broker: CommandBroker
    suggestion_engine: CommandSuggestionEngine


def build_context(
    config_provider: ConfigProvider,
    on_audit: Optional[AuditCallback] = None,
) -> ServiceContext:
    """
    Build the service context.

    Args:
        config_provider: Configuration provider
        on_audit: Optional audit sink; defaults to structured logging

    Returns:
        Fully wired ServiceContext
    """
    llm_config = config_provider.get_llm_config()
    provider_registry = ProviderRegistry(llm_config)

    configured = llm_config.configured_provider_ids
    if configured:
        logger.info(f"LLM providers configured: {', '.join(configured)}")
    else:
        logger.info("No LLM provider configured; suggestions use heuristics only")

    return ServiceContext(
        config_provider=config_provider,
        provider_registry=provider_registry,
        broker=CommandBroker(on_audit=on_audit),
        suggestion_engine=CommandSuggestionEngine(provider_registry),
    )
