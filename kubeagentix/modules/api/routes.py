"""
CLI routes for the KubeAgentix API.

Thin routing over the broker and the suggestion engine: validate presence
of the payload, delegate, and map typed error codes to HTTP statuses.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from .errors import (
    BrokerErrorCode,
    CommandBrokerError,
    CommandCoreError,
    CommandSuggestionError,
    SuggestionErrorCode,
)
from .models import (
    ErrorDetail,
    ErrorResponse,
    ExecuteRequest,
    ExecuteResponse,
    SuggestRequest,
    SuggestResponse,
)

logger = logging.getLogger(__name__)

EXECUTE_STATUS = {
    BrokerErrorCode.COMMAND_BLOCKED: 403,
    BrokerErrorCode.COMMAND_TIMEOUT: 408,
    BrokerErrorCode.COMMAND_INVALID: 500,
    BrokerErrorCode.COMMAND_FAILED: 500,
}

SUGGEST_STATUS = {
    SuggestionErrorCode.SUGGESTION_INVALID: 400,
    SuggestionErrorCode.SUGGESTION_BLOCKED: 403,
    SuggestionErrorCode.SUGGESTION_UNAVAILABLE: 503,
    SuggestionErrorCode.SUGGESTION_FAILED: 500,
}


def get_context(request: Request):
    """Resolve the ServiceContext built at startup."""
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(503, "Service not initialized")
    return context


def error_response(status_code: int, detail: ErrorDetail) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=detail).to_json())


def _core_error_response(error: CommandCoreError, status_map: dict) -> JSONResponse:
    return error_response(status_map.get(error.code, 500), error.to_detail())


def create_cli_router() -> APIRouter:
    """
    Create the terminal command router.

    Returns:
        FastAPI router with /api/cli/execute and /api/cli/suggest
    """
    router = APIRouter(prefix="/api/cli", tags=["cli"])

    @router.post("/execute", response_model=ExecuteResponse)
    async def execute_command(payload: ExecuteRequest, context=Depends(get_context)):
        """Run one command through the broker."""
        if not payload.command:
            return error_response(
                400,
                ErrorDetail(
                    code=BrokerErrorCode.COMMAND_INVALID.value,
                    message="Missing command",
                    retryable=False,
                ),
            )

        try:
            return await context.broker.execute(payload)
        except CommandBrokerError as e:
            return _core_error_response(e, EXECUTE_STATUS)
        except Exception as e:
            logger.exception(f"Unhandled execute error: {e}")
            return error_response(
                500,
                ErrorDetail(
                    code=BrokerErrorCode.COMMAND_FAILED.value, message=str(e), retryable=True
                ),
            )

    @router.post("/suggest", response_model=SuggestResponse)
    async def suggest_command(payload: SuggestRequest, context=Depends(get_context)):
        """Turn a natural-language query into one policy-approved command."""
        if not payload.query:
            return error_response(
                400,
                ErrorDetail(
                    code=SuggestionErrorCode.SUGGESTION_INVALID.value,
                    message="Missing query",
                    retryable=False,
                ),
            )

        try:
            return await context.suggestion_engine.suggest(payload)
        except CommandSuggestionError as e:
            return _core_error_response(e, SUGGEST_STATUS)
        except Exception as e:
            logger.exception(f"Unhandled suggest error: {e}")
            return error_response(
                500,
                ErrorDetail(
                    code=SuggestionErrorCode.SUGGESTION_FAILED.value, message=str(e), retryable=True
                ),
            )

    return router
