"""Build generation pipeline.

This module turns a build request into a validated build result:
- Prompt assembly tailored to the target coding agent
- Model endpoint calls with exponential backoff
- JSON extraction, validation and normalization of model output
- Advisory safety scans of generated content
"""

from buildprompt.generation.client import ModelClient
from buildprompt.generation.models import (
    CODING_AGENTS,
    AgentPrompt,
    BuildRequest,
    BuildResult,
    CodingAgent,
    CodingAgentInfo,
    GuideStep,
    IdeaValidation,
    ModelResponse,
)
from buildprompt.generation.parsing import (
    extract_json_from_response,
    parse_build_response,
    safe_json_parse,
)
from buildprompt.generation.prompts import (
    build_system_prompt,
    build_user_prompt,
    get_agent_instructions,
)
from buildprompt.generation.retry import retry_with_backoff
from buildprompt.generation.safety import (
    ContentWarnings,
    check_for_outdated_references,
    detect_dangerous_patterns,
    scan_build_result,
)
from buildprompt.generation.service import (
    GenerationService,
    generate_build,
    get_generation_service,
)
from buildprompt.generation.utils import sanitize_input

__all__ = [
    # Client
    "ModelClient",
    # Models
    "CODING_AGENTS",
    "AgentPrompt",
    "BuildRequest",
    "BuildResult",
    "CodingAgent",
    "CodingAgentInfo",
    "GuideStep",
    "IdeaValidation",
    "ModelResponse",
    # Parsing
    "extract_json_from_response",
    "parse_build_response",
    "safe_json_parse",
    # Prompts
    "build_system_prompt",
    "build_user_prompt",
    "get_agent_instructions",
    # Retry
    "retry_with_backoff",
    # Safety
    "ContentWarnings",
    "check_for_outdated_references",
    "detect_dangerous_patterns",
    "scan_build_result",
    # Service
    "GenerationService",
    "generate_build",
    "get_generation_service",
    # Utils
    "sanitize_input",
]
