"""Build orchestration: request checks, usage gates, generation, accounting."""

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from buildprompt.errors import (
    InvalidBuildRequestError,
    MonthlyLimitExceededError,
    RateLimitExceededError,
)
from buildprompt.generation import (
    BuildRequest,
    BuildResult,
    CodingAgent,
    ContentWarnings,
    GenerationService,
    get_generation_service,
    sanitize_input,
    scan_build_result,
)
from buildprompt.generation.models import CamelModel
from buildprompt.history import BuildStore, get_build_repository
from buildprompt.metering import UsageSnapshot, UsageStore, get_usage_repository
from buildprompt.ratelimit import (
    RateLimiter,
    RateLimitResult,
    check_monthly_limit,
    get_monthly_reset_time,
    get_policy_for_tier,
    get_rate_limiter,
)
from buildprompt.config import Settings, get_settings

logger = logging.getLogger(__name__)

ANONYMOUS_IDENTIFIER = "anonymous"


class GenerateRequest(CamelModel):
    """Raw build request body as sent by the web client."""

    idea: str | None = None
    agent: str | None = None
    custom_agent: str | None = None
    tech_stack: str | None = None
    additional_context: str | None = None


def _clean(value: str | None) -> str | None:
    if not value:
        return None
    cleaned = sanitize_input(value).strip()
    return cleaned or None


def build_request_from_payload(payload: GenerateRequest) -> BuildRequest:
    """Validate and sanitize a raw request body.

    Args:
        payload: Request body.

    Returns:
        Immutable, sanitized build request.

    Raises:
        InvalidBuildRequestError: If the idea or agent is missing or the
            agent is unknown.
    """
    idea = _clean(payload.idea)
    if not idea or not payload.agent:
        raise InvalidBuildRequestError("Project idea and coding agent are required")

    try:
        agent = CodingAgent(payload.agent)
    except ValueError as e:
        raise InvalidBuildRequestError(f"Unknown coding agent: {payload.agent}") from e

    try:
        return BuildRequest(
            idea=idea,
            agent=agent,
            custom_agent=_clean(payload.custom_agent),
            tech_stack=_clean(payload.tech_stack),
            additional_context=_clean(payload.additional_context),
        )
    except ValidationError as e:
        raise InvalidBuildRequestError("Invalid build request") from e


@dataclass
class BuildOutcome:
    """A generated build plus the gate results that let it through."""

    result: BuildResult
    rate_limit: RateLimitResult
    rate_limit_limit: int
    warnings: ContentWarnings


class BuildService:
    """Runs a build request through the usage gates and the generator.

    Signed-in users get the per-minute limit of their tier and the monthly
    build quota, and their builds are saved to their history. Anonymous
    callers get a per-day limit keyed by client IP.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter | None = None,
        usage_repo: UsageStore | None = None,
        generation_service: GenerationService | None = None,
        build_repo: BuildStore | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the build service.

        Args:
            rate_limiter: Rate limiter.
            usage_repo: Usage repository (tier lookup and usage records).
            generation_service: Build generator.
            build_repo: Build history for signed-in users.
            settings: Application settings.
        """
        self._settings = settings or get_settings()
        self._rate_limiter = rate_limiter or get_rate_limiter()
        self._usage_repo = usage_repo or get_usage_repository()
        self._generation = generation_service or get_generation_service()
        self._build_repo = build_repo or get_build_repository()

    async def _check_user_gates(self, user_id: str) -> tuple[RateLimitResult, int]:
        tier = await self._usage_repo.get_tier(user_id)
        builds_used = await self._usage_repo.get_monthly_usage(user_id)
        limit = get_policy_for_tier(tier).requests_per_minute

        rate = await self._rate_limiter.check_rate_limit(user_id, tier)
        if not rate.allowed:
            raise RateLimitExceededError(rate.remaining, rate.reset_in_seconds, limit=limit)

        monthly = check_monthly_limit(builds_used, tier)
        if not monthly.allowed:
            logger.info("Monthly limit reached for %s (%d builds)", user_id, monthly.limit)
            raise MonthlyLimitExceededError(monthly.limit, get_monthly_reset_time())

        return rate, limit

    async def _check_anonymous_gate(self, client_ip: str | None) -> tuple[RateLimitResult, int]:
        limit = self._settings.anonymous_daily_limit
        rate = await self._rate_limiter.check_daily_rate_limit(
            client_ip or ANONYMOUS_IDENTIFIER, limit
        )
        if not rate.allowed:
            raise RateLimitExceededError(rate.remaining, rate.reset_in_seconds, limit=limit)
        return rate, limit

    async def generate(
        self,
        payload: GenerateRequest,
        user_id: str | None = None,
        client_ip: str | None = None,
    ) -> BuildOutcome:
        """Check, generate, scan and record one build.

        Args:
            payload: Raw request body.
            user_id: Authenticated user ID, None for anonymous callers.
            client_ip: Caller IP, used for anonymous limiting.

        Returns:
            Build outcome.

        Raises:
            BuildPromptError: Any gate or generation failure, carrying its code.
        """
        request = build_request_from_payload(payload)

        if user_id:
            rate, limit = await self._check_user_gates(user_id)
        else:
            rate, limit = await self._check_anonymous_gate(client_ip)

        result = await self._generation.generate_build(request)

        # Advisory only
        warnings = scan_build_result(result)

        if user_id:
            # The monthly count was read before generation, so concurrent
            # requests from one user can each pass the quota check.
            await self._usage_repo.record_usage(user_id, result.id, result.tokens_used)
            await self._save_to_history(user_id, request, result)

        return BuildOutcome(
            result=result,
            rate_limit=rate,
            rate_limit_limit=limit,
            warnings=warnings,
        )

    async def _save_to_history(self, user_id: str, request: BuildRequest, result: BuildResult) -> None:
        agent = request.agent.value
        if request.agent == CodingAgent.CUSTOM and request.custom_agent:
            agent = request.custom_agent
        try:
            await self._build_repo.save_build(user_id, result, idea=request.idea, agent=agent)
        except Exception:
            # The build is already charged; the caller still gets it
            logger.exception("Failed to save build %s to history", result.id)

    async def get_usage(self, user_id: str) -> UsageSnapshot:
        """Get the monthly usage view for a user.

        Args:
            user_id: User ID.

        Returns:
            Usage snapshot with tier allowance and reset date.
        """
        tier = await self._usage_repo.get_tier(user_id)
        builds_used = await self._usage_repo.get_monthly_usage(user_id)
        policy = get_policy_for_tier(tier)
        monthly = check_monthly_limit(builds_used, tier)

        return UsageSnapshot(
            tier=tier,
            builds_used=builds_used,
            monthly_limit=monthly.limit,
            remaining=monthly.remaining,
            reset_date=get_monthly_reset_time(),
            features=list(policy.features),
        )


# Global service instance
_build_service: BuildService | None = None


def get_build_service() -> BuildService:
    """Get the global build service instance.

    Returns:
        BuildService instance.
    """
    global _build_service
    if _build_service is None:
        _build_service = BuildService()
    return _build_service
