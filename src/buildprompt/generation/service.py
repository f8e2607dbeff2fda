"""Build generation: prompts, model call with retries, parsing."""

import logging
from datetime import datetime

from buildprompt.config import Settings, get_settings
from buildprompt.errors import EmptyModelResponseError
from buildprompt.generation.client import ModelClient
from buildprompt.generation.models import BuildRequest, BuildResult, IdeaValidation, ModelResponse
from buildprompt.generation.parsing import (
    extract_json_from_response,
    parse_build_response,
    safe_json_parse,
)
from buildprompt.generation.prompts import (
    IDEA_VALIDATOR_SYSTEM_PROMPT,
    build_idea_validation_prompt,
    build_system_prompt,
    build_user_prompt,
)
from buildprompt.generation.retry import retry_with_backoff
from buildprompt.telemetry import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


class GenerationService:
    """Generates build guides from project ideas.

    Endpoint failures are retried with exponential backoff. Empty or
    malformed model output is not retried.
    """

    def __init__(
        self,
        client: ModelClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the generation service.

        Args:
            client: Model endpoint client.
            settings: Application settings.
        """
        self._settings = settings or get_settings()
        self._client = client or ModelClient(self._settings)

    async def generate_build(
        self,
        request: BuildRequest,
        now: datetime | None = None,
    ) -> BuildResult:
        """Generate a build guide and agent prompts.

        Args:
            request: Sanitized build request.
            now: Reference time for the date context (defaults to now).

        Returns:
            Validated build result.

        Raises:
            ModelConfigError: If the endpoint is not configured.
            ModelEndpointError: If the endpoint keeps failing after retries.
            GenerationError: If the model output is empty or malformed.
        """
        # Configuration problems are not transient
        self._client.ensure_configured()

        system_prompt = build_system_prompt(now)
        user_prompt = build_user_prompt(request)
        attempts = 0

        async def call_model() -> ModelResponse:
            nonlocal attempts
            attempts += 1
            with tracer.start_as_current_span("buildprompt.model_call") as span:
                span.set_attribute("buildprompt.attempt", attempts)
                return await self._client.complete(system_prompt, user_prompt)

        with tracer.start_as_current_span("buildprompt.generate_build") as span:
            span.set_attribute("buildprompt.agent", request.agent.value)

            response = await retry_with_backoff(
                call_model,
                max_retries=self._settings.generation_max_retries,
                base_delay=self._settings.generation_retry_base_delay_seconds,
            )
            span.set_attribute("buildprompt.attempts", attempts)
            span.set_attribute("buildprompt.tokens_used", response.tokens_used)

            if not response.content:
                raise EmptyModelResponseError("Empty response from model endpoint")

            result = parse_build_response(response.content, response.tokens_used, now)
            span.set_attribute("buildprompt.build_id", result.id)

        logger.info(
            "Generated build %s (%d tokens, %d attempt(s))",
            result.id,
            result.tokens_used,
            attempts,
            extra={"agent": request.agent.value, "project_name": result.project_name},
        )
        return result

    async def validate_idea(self, idea: str) -> IdeaValidation:
        """Quick feasibility check for an idea.

        Any failure counts as valid so that the check never blocks a user.

        Args:
            idea: Project idea text.

        Returns:
            Validation verdict.
        """
        try:
            response = await self._client.complete(
                IDEA_VALIDATOR_SYSTEM_PROMPT,
                build_idea_validation_prompt(idea),
            )
        except Exception as e:
            logger.warning("Idea validation failed, treating idea as valid: %s", e)
            return IdeaValidation(valid=True)

        parsed = safe_json_parse(extract_json_from_response(response.content or ""))
        if not isinstance(parsed, dict) or not isinstance(parsed.get("valid"), bool):
            return IdeaValidation(valid=True)

        feedback = parsed.get("feedback")
        return IdeaValidation(
            valid=parsed["valid"],
            feedback=feedback if isinstance(feedback, str) else None,
        )


# Global service instance
_generation_service: GenerationService | None = None


def get_generation_service() -> GenerationService:
    """Get the global generation service instance.

    Returns:
        GenerationService instance.
    """
    global _generation_service
    if _generation_service is None:
        _generation_service = GenerationService()
    return _generation_service


async def generate_build(request: BuildRequest) -> BuildResult:
    """Generate a build with the global generation service."""
    return await get_generation_service().generate_build(request)
