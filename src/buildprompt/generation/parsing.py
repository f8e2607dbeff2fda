"""Turning raw model output into a validated BuildResult."""

import json
import logging
import math
import re
from datetime import datetime
from typing import Any, get_args

from buildprompt.errors import InvalidResponseStructureError, UnparseableResponseError
from buildprompt.generation.models import AgentPrompt, BuildResult, Complexity, GuideStep
from buildprompt.generation.utils import generate_id, get_current_date_for_prompt, get_iso_date

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_JSON_SPAN = re.compile(r"(\{[\s\S]*\}|\[[\s\S]*\])")

DEFAULT_FEASIBILITY_SCORE = 5
DEFAULT_COMPLEXITY: Complexity = "intermediate"
COMPLEXITY_LEVELS = frozenset(get_args(Complexity))


def extract_json_from_response(response: str) -> str:
    """Pull the JSON payload out of a model response.

    Prefers the body of a fenced code block, then the widest ``{...}`` or
    ``[...]`` span. Text without either is returned unchanged.
    """
    block = _FENCED_BLOCK.search(response)
    if block:
        return block.group(1).strip()

    span = _JSON_SPAN.search(response)
    if span:
        return span.group(1).strip()

    return response


def safe_json_parse(text: str) -> Any | None:
    """Parse JSON, returning None instead of raising."""
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


def normalize_feasibility_score(value: Any) -> int:
    """Clamp a score into 1..10; missing, zero or non-numeric values become 5."""
    if isinstance(value, bool) or not value:
        return DEFAULT_FEASIBILITY_SCORE
    try:
        score = round(float(value))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_FEASIBILITY_SCORE
    return min(10, max(1, score))


def normalize_complexity(value: Any) -> Complexity:
    if isinstance(value, str) and value.lower() in COMPLEXITY_LEVELS:
        return value.lower()  # type: ignore[return-value]
    return DEFAULT_COMPLEXITY


def normalize_tech_stack(value: Any) -> dict[str, list[str]]:
    """Keep string lists per category; a bare string becomes a one-item list."""
    if not isinstance(value, dict):
        return {}

    stack: dict[str, list[str]] = {}
    for category, items in value.items():
        if isinstance(items, str):
            stack[str(category)] = [items]
        elif isinstance(items, list):
            stack[str(category)] = [str(item) for item in items if item is not None]
    return stack


def _coerce_text(value: Any) -> str:
    """Render a loosely typed model field as text; lists become lines."""
    if value is None:
        return ""
    if isinstance(value, list):
        return "\n".join(str(part) for part in value if part is not None)
    return str(value)


def _coerce_int(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return round(number)


def _coerce_tips(value: Any) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, list):
        return [str(tip) for tip in value if tip is not None]
    return [str(value)]


def _object_items(items: list[Any], field: str) -> list[dict[str, Any]]:
    objects = [item for item in items if isinstance(item, dict)]
    if len(objects) != len(items):
        logger.warning(
            "Dropped %d non-object %s items from model response",
            len(items) - len(objects),
            field,
        )
    return objects


def _build_guide(items: list[Any]) -> list[GuideStep]:
    steps = []
    for index, item in enumerate(_object_items(items, "guide"), start=1):
        step = _coerce_int(item.get("step"))
        code_example = item.get("codeExample")
        steps.append(
            GuideStep(
                step=index if step is None else step,
                title=_coerce_text(item.get("title")),
                description=_coerce_text(item.get("description")),
                details=_coerce_text(item.get("details")),
                code_example=None if code_example is None else _coerce_text(code_example),
                tips=_coerce_tips(item.get("tips")),
            )
        )
    return steps


def _build_prompts(items: list[Any]) -> list[AgentPrompt]:
    """Build prompts ordered ascending; prompts without a usable order go last."""
    objects = _object_items(items, "prompts")
    orders = [_coerce_int(item.get("order")) for item in objects]
    next_order = max((order for order in orders if order is not None), default=0)

    prompts = []
    for item, order in zip(objects, orders):
        if order is None:
            next_order += 1
            order = next_order
        prompts.append(
            AgentPrompt(
                title=_coerce_text(item.get("title")),
                description=_coerce_text(item.get("description")),
                prompt=_coerce_text(item.get("prompt")),
                order=order,
            )
        )
    return sorted(prompts, key=lambda p: p.order)


def parse_build_response(
    content: str,
    tokens_used: int,
    now: datetime | None = None,
) -> BuildResult:
    """Parse, validate and normalize a build from model output.

    Args:
        content: Raw model output, possibly wrapped in markdown.
        tokens_used: Tokens reported by the endpoint.
        now: Generation time (defaults to now).

    Returns:
        Normalized build result with a fresh id.

    Raises:
        UnparseableResponseError: If no JSON object can be parsed.
        InvalidResponseStructureError: If required fields are missing or mistyped.
    """
    parsed = safe_json_parse(extract_json_from_response(content))

    if not isinstance(parsed, dict):
        logger.error("Failed to parse model response: %s", content[:500])
        raise UnparseableResponseError("Failed to parse model response into valid build guide")

    project_name = parsed.get("projectName")
    summary = parsed.get("summary")
    guide = parsed.get("guide")
    prompts = parsed.get("prompts")

    if (
        not project_name
        or not isinstance(project_name, str)
        or not summary
        or not isinstance(summary, str)
        or not isinstance(guide, list)
        or not isinstance(prompts, list)
    ):
        logger.error(
            "Invalid response structure from model",
            extra={"keys": sorted(parsed.keys())},
        )
        raise InvalidResponseStructureError(
            "Invalid response structure: projectName, summary, guide and prompts are required"
        )

    guide_steps = _build_guide(guide)
    agent_prompts = _build_prompts(prompts)

    return BuildResult(
        id=generate_id(),
        project_name=project_name,
        summary=summary,
        feasibility_score=normalize_feasibility_score(parsed.get("feasibilityScore")),
        tech_stack_recommendation=normalize_tech_stack(parsed.get("techStackRecommendation")),
        guide=guide_steps,
        prompts=agent_prompts,
        estimated_complexity=normalize_complexity(parsed.get("estimatedComplexity")),
        current_as_of=get_current_date_for_prompt(now),
        generated_at=get_iso_date(now),
        tokens_used=tokens_used,
    )
