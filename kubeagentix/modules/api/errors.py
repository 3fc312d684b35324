"""
Typed errors that cross the command core boundary.

Every failure leaving the broker or the suggestion engine is one of these,
with a stable ``code`` the HTTP layer maps to a status.
"""

from enum import Enum
from typing import Optional

from .models import ErrorDetail, PolicyDecision


class BrokerErrorCode(str, Enum):
    """Failure codes raised by the execution broker."""

    COMMAND_BLOCKED = "COMMAND_BLOCKED"
    COMMAND_INVALID = "COMMAND_INVALID"
    COMMAND_FAILED = "COMMAND_FAILED"
    COMMAND_TIMEOUT = "COMMAND_TIMEOUT"


class SuggestionErrorCode(str, Enum):
    """Failure codes raised by the suggestion engine."""

    SUGGESTION_INVALID = "SUGGESTION_INVALID"
    SUGGESTION_BLOCKED = "SUGGESTION_BLOCKED"
    SUGGESTION_FAILED = "SUGGESTION_FAILED"
    SUGGESTION_UNAVAILABLE = "SUGGESTION_UNAVAILABLE"


class CommandCoreError(Exception):
    """Base class for typed command core errors."""

    def __init__(
        self,
        code: str,
        message: str,
        retryable: bool,
        policy_decision: Optional[PolicyDecision] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.retryable = retryable
        self.policy_decision = policy_decision

    def to_detail(self) -> ErrorDetail:
        """Convert to the HTTP error payload."""
        return ErrorDetail(
            code=str(self.code.value if isinstance(self.code, Enum) else self.code),
            message=self.message,
            retryable=self.retryable,
            policy_decision=self.policy_decision,
        )


class CommandBrokerError(CommandCoreError):
    """Raised by ``CommandBroker.execute``."""

    def __init__(
        self,
        code: BrokerErrorCode,
        message: str,
        retryable: bool,
        policy_decision: Optional[PolicyDecision] = None,
    ):
        super().__init__(code, message, retryable, policy_decision)


class CommandSuggestionError(CommandCoreError):
    """Raised by ``CommandSuggestionEngine.suggest``."""

    def __init__(
        self,
        code: SuggestionErrorCode,
        message: str,
        retryable: bool,
        policy_decision: Optional[PolicyDecision] = None,
    ):
        super().__init__(code, message, retryable, policy_decision)
