#!/usr/bin/env python3
"""
KubeAgentix - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Builds the service context (broker, suggestion engine, providers)
3. Runs the API server

All business logic is in the modules, following black box principles.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kubeagentix import __version__
from kubeagentix.config.provider import ConfigProvider, load_config_provider
from kubeagentix.context import ServiceContext, build_context
from kubeagentix.logging_config import configure_logging, get_logging_config
from kubeagentix.modules.api.routes import create_cli_router

logger = logging.getLogger(__name__)


def create_app(
    config_provider: Optional[ConfigProvider] = None,
    context: Optional[ServiceContext] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config_provider: Configuration provider; defaults to environment/YAML
        context: Prebuilt service context (tests inject their own)

    Returns:
        Configured FastAPI application
    """
    config_provider = config_provider or load_config_provider()
    api_config = config_provider.get_api_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the service context once at startup."""
        logger.info("Starting KubeAgentix command API...")
        if getattr(app.state, "context", None) is None:
            app.state.context = build_context(config_provider)
        logger.info("KubeAgentix command API started successfully")

        yield

        logger.info("KubeAgentix command API shutdown complete")

    app = FastAPI(
        title="KubeAgentix API",
        description="KubeAgentix - policy-gated Kubernetes command execution and suggestion",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(create_cli_router())

    @app.get("/healthz")
    async def healthz():
        """Liveness probe."""
        return {"status": "ok"}

    @app.get("/health")
    async def health_check():
        """Readiness probe with provider summary."""
        ctx = app.state.context
        if ctx is None:
            return JSONResponse(status_code=503, content={"status": "unhealthy"})
        return {
            "status": "healthy",
            "version": __version__,
            "llm_providers": ctx.config_provider.get_llm_config().configured_provider_ids,
        }

    return app


def main() -> None:
    """Run the API server."""
    config_provider = load_config_provider()
    api_config = config_provider.get_api_config()
    configure_logging(api_config.log_level)

    uvicorn.run(
        create_app(config_provider),
        host=api_config.host,
        port=api_config.port,
        log_level=api_config.log_level.lower(),
        log_config=get_logging_config(api_config.log_level),
    )


if __name__ == "__main__":
    main()
