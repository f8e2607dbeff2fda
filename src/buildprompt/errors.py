"""Error taxonomy and caller-facing result codes."""

from datetime import datetime
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Result codes the HTTP boundary maps to responses."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    MONTHLY_LIMIT_EXCEEDED = "MONTHLY_LIMIT_EXCEEDED"
    API_CONFIG_ERROR = "API_CONFIG_ERROR"
    AI_RATE_LIMIT = "AI_RATE_LIMIT"
    AI_SERVICE_ERROR = "AI_SERVICE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class BuildPromptError(Exception):
    """Base class for errors that carry a result code."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidBuildRequestError(BuildPromptError):
    """The build request is missing required fields or is malformed."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 400


class RateLimitExceededError(BuildPromptError):
    """The caller exhausted its current rate limit window."""

    code = ErrorCode.RATE_LIMIT_EXCEEDED
    status_code = 429

    def __init__(self, remaining: int, reset_in_seconds: int, limit: int | None = None):
        super().__init__(
            f"Rate limit exceeded. Try again in {reset_in_seconds} seconds.",
            details={"remaining": remaining, "reset_in_seconds": reset_in_seconds},
        )
        self.remaining = remaining
        self.reset_in_seconds = reset_in_seconds
        self.limit = limit


class MonthlyLimitExceededError(BuildPromptError):
    """The user has no builds left this month."""

    code = ErrorCode.MONTHLY_LIMIT_EXCEEDED
    status_code = 403

    def __init__(self, limit: int, reset_date: datetime):
        super().__init__(
            f"You've used all {limit} builds this month. Upgrade to continue.",
            details={"limit": limit, "reset_date": reset_date.isoformat()},
        )
        self.limit = limit
        self.reset_date = reset_date


class ModelConfigError(BuildPromptError):
    """The model endpoint is not configured or rejected our credentials."""

    code = ErrorCode.API_CONFIG_ERROR
    status_code = 500


class ModelEndpointError(BuildPromptError):
    """The model endpoint was unreachable or returned an error status."""

    code = ErrorCode.AI_SERVICE_ERROR
    status_code = 502

    def __init__(
        self,
        message: str,
        endpoint_status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.endpoint_status = endpoint_status


class ModelRateLimitError(ModelEndpointError):
    """The model endpoint itself is rate limiting us."""

    code = ErrorCode.AI_RATE_LIMIT
    status_code = 503


class GenerationError(BuildPromptError):
    """The model answered but its output could not be turned into a build."""

    code = ErrorCode.INTERNAL_ERROR
    status_code = 500


class EmptyModelResponseError(GenerationError):
    """The model returned no content."""


class UnparseableResponseError(GenerationError):
    """The model output did not contain parseable JSON."""


class InvalidResponseStructureError(GenerationError):
    """The model output parsed but lacks required fields."""
