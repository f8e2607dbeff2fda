"""API router for build generation, idea validation, usage and build history."""

import logging
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from buildprompt.api.service import BuildService, GenerateRequest, get_build_service
from buildprompt.errors import BuildPromptError, ErrorCode, RateLimitExceededError
from buildprompt.generation import (
    CODING_AGENTS,
    BuildResult,
    GenerationService,
    get_generation_service,
    sanitize_input,
)
from buildprompt.history import DEFAULT_PAGE_SIZE, BuildStore, get_build_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["buildprompt"])

HEALTH_SERVICE_NAME = "buildprompt-ai-generate"

# Caller-facing wording for codes whose internal message should not leak
PUBLIC_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.API_CONFIG_ERROR: "AI service is not configured. Please contact support.",
    ErrorCode.AI_RATE_LIMIT: "AI service is busy. Please try again in a moment.",
    ErrorCode.AI_SERVICE_ERROR: "AI service is unavailable. Please try again later.",
    ErrorCode.INTERNAL_ERROR: "Failed to generate build. Please try again.",
}


class ApiError(BaseModel):
    """Error part of the response envelope."""

    code: ErrorCode
    message: str


class ApiResponse(BaseModel):
    """Response envelope for build generation."""

    success: bool
    data: Any | None = None
    error: ApiError | None = None


class ValidateIdeaRequest(BaseModel):
    """Idea validation request."""

    idea: str | None = Field(None, description="Project idea to check")


class SaveBuildRequest(BuildResult):
    """A generated build sent back by the web client to keep in history."""

    idea: str = Field(default="", description="Idea the build was generated from")
    agent: str = Field(default="unknown", description="Coding agent the build targets")


def get_client_ip(request: Request) -> str | None:
    """Extract the caller IP, preferring the first X-Forwarded-For entry.

    Args:
        request: FastAPI request.

    Returns:
        Client IP if known, None otherwise.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client:
        return request.client.host
    return None


def _envelope(response: ApiResponse, status_code: int, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


def error_response(error: BuildPromptError) -> JSONResponse:
    """Map a domain error to its envelope, status and headers.

    Args:
        error: Domain error.

    Returns:
        JSON error response.
    """
    message = PUBLIC_MESSAGES.get(error.code, error.message)
    headers: dict[str, str] = {}

    if isinstance(error, RateLimitExceededError):
        headers["Retry-After"] = str(error.reset_in_seconds)
        headers["X-RateLimit-Remaining"] = "0"
        headers["X-RateLimit-Reset"] = str(error.reset_in_seconds)
        if error.limit is not None:
            headers["X-RateLimit-Limit"] = str(error.limit)

    return _envelope(
        ApiResponse(success=False, error=ApiError(code=error.code, message=message)),
        status_code=error.status_code,
        headers=headers or None,
    )


def validation_error_response(error: RequestValidationError) -> JSONResponse:
    """Map a malformed request (bad JSON, wrong field types) to the 400 envelope.

    Args:
        error: FastAPI request validation error.

    Returns:
        JSON error response naming the first offending field.
    """
    message = "Invalid request body"
    errors = error.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        detail = first.get("msg", "invalid value")
        message = f"Invalid request: {location}: {detail}" if location else f"Invalid request: {detail}"

    return _envelope(
        ApiResponse(success=False, error=ApiError(code=ErrorCode.VALIDATION_ERROR, message=message)),
        status_code=400,
    )


def _authentication_required() -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": "Authentication required"})


def _build_not_found() -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "Build not found"})


@router.post(
    "/generate",
    summary="Generate a build",
    description="Generate a step-by-step build guide and coding agent prompts for an idea.",
)
async def generate(
    payload: GenerateRequest,
    request: Request,
    service: Annotated[BuildService, Depends(get_build_service)],
    x_user_id: Annotated[str | None, Header()] = None,
) -> JSONResponse:
    """Generate a build for the caller.

    Args:
        payload: Build request body.
        request: FastAPI request.
        service: Build service.
        x_user_id: Authenticated user ID, absent for anonymous callers.

    Returns:
        Response envelope with the build or an error.
    """
    try:
        outcome = await service.generate(
            payload,
            user_id=x_user_id or None,
            client_ip=get_client_ip(request),
        )
    except BuildPromptError as e:
        if e.status_code >= 500:
            logger.error("Build generation failed (%s): %s", e.code.value, e.message)
        else:
            logger.info("Build request rejected (%s): %s", e.code.value, e.message)
        return error_response(e)
    except Exception:
        logger.exception("Unexpected error during build generation")
        return _envelope(
            ApiResponse(
                success=False,
                error=ApiError(
                    code=ErrorCode.INTERNAL_ERROR,
                    message=PUBLIC_MESSAGES[ErrorCode.INTERNAL_ERROR],
                ),
            ),
            status_code=500,
        )

    headers = {
        "X-RateLimit-Limit": str(outcome.rate_limit_limit),
        "X-RateLimit-Remaining": str(outcome.rate_limit.remaining),
        "X-RateLimit-Reset": str(outcome.rate_limit.reset_in_seconds),
    }
    return _envelope(
        ApiResponse(success=True, data=outcome.result.model_dump(mode="json", by_alias=True)),
        status_code=200,
        headers=headers,
    )


@router.get("/generate", summary="Generation health check")
async def generate_health() -> dict:
    """Health check for the generation endpoint."""
    return {
        "status": "ok",
        "service": HEALTH_SERVICE_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post(
    "/validate-idea",
    summary="Validate an idea",
    description="Quick check that an idea is specific enough to build.",
)
async def validate_idea(
    payload: ValidateIdeaRequest,
    generation: Annotated[GenerationService, Depends(get_generation_service)],
) -> JSONResponse:
    """Validate a project idea.

    Args:
        payload: Idea validation request.
        generation: Generation service.

    Returns:
        Verdict with optional feedback.
    """
    idea = (payload.idea or "").strip()
    if not idea:
        return _envelope(
            ApiResponse(
                success=False,
                error=ApiError(code=ErrorCode.VALIDATION_ERROR, message="Idea is required"),
            ),
            status_code=400,
        )

    verdict = await generation.validate_idea(idea)
    return JSONResponse(content=verdict.model_dump(exclude_none=True))


@router.get("/user/usage", summary="Get monthly usage")
async def get_user_usage(
    service: Annotated[BuildService, Depends(get_build_service)],
    x_user_id: Annotated[str | None, Header()] = None,
) -> JSONResponse:
    """Get the caller's tier, usage this month and reset date.

    Args:
        service: Build service.
        x_user_id: Authenticated user ID.

    Returns:
        Usage snapshot, or 401 for anonymous callers.
    """
    if not x_user_id:
        return _authentication_required()

    snapshot = await service.get_usage(x_user_id)
    return JSONResponse(content=snapshot.model_dump(mode="json", by_alias=True))


@router.get("/agents", summary="List coding agents")
async def list_agents() -> list[dict]:
    """Coding agents a build can target."""
    return [agent.model_dump(mode="json", by_alias=True) for agent in CODING_AGENTS]


@router.get("/builds", summary="List saved builds")
async def list_builds(
    builds: Annotated[BuildStore, Depends(get_build_repository)],
    x_user_id: Annotated[str | None, Header()] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = DEFAULT_PAGE_SIZE,
) -> JSONResponse:
    """List the caller's saved builds, newest first.

    Args:
        builds: Build history repository.
        x_user_id: Authenticated user ID.
        page: 1-based page number.
        limit: Builds per page.

    Returns:
        ``{builds, pagination: {page, limit, total, totalPages}}``, or 401
        for anonymous callers.
    """
    if not x_user_id:
        return _authentication_required()

    result = await builds.list_builds(x_user_id, page=page, limit=limit)
    return JSONResponse(content=result.model_dump(mode="json", by_alias=True))


@router.post("/builds", summary="Save a build")
async def save_build(
    payload: SaveBuildRequest,
    builds: Annotated[BuildStore, Depends(get_build_repository)],
    x_user_id: Annotated[str | None, Header()] = None,
) -> JSONResponse:
    """Save a generated build to the caller's history.

    Saving the same build twice is not an error.
    """
    if not x_user_id:
        return _authentication_required()

    build = BuildResult.model_validate(payload.model_dump(exclude={"idea", "agent"}))
    saved = await builds.save_build(
        x_user_id,
        build,
        idea=sanitize_input(payload.idea).strip(),
        agent=payload.agent,
    )
    if not saved:
        return JSONResponse(content={"success": True, "message": "Build already saved"})
    return JSONResponse(content={"success": True})


@router.get("/builds/{build_id}", summary="Get a saved build")
async def get_build(
    build_id: str,
    builds: Annotated[BuildStore, Depends(get_build_repository)],
    x_user_id: Annotated[str | None, Header()] = None,
) -> JSONResponse:
    """Get one of the caller's saved builds, or 404."""
    if not x_user_id:
        return _authentication_required()

    saved = await builds.get_build(x_user_id, build_id)
    if saved is None:
        return _build_not_found()
    return JSONResponse(content={"build": saved.model_dump(mode="json", by_alias=True)})


@router.delete("/builds/{build_id}", summary="Delete a saved build")
async def delete_build(
    build_id: str,
    builds: Annotated[BuildStore, Depends(get_build_repository)],
    x_user_id: Annotated[str | None, Header()] = None,
) -> JSONResponse:
    if not x_user_id:
        return _authentication_required()

    if not await builds.delete_build(x_user_id, build_id):
        return _build_not_found()
    return JSONResponse(content={"success": True})
