"""HTTP API for BuildPrompt AI."""

from buildprompt.api.app import create_app
from buildprompt.api.service import (
    BuildOutcome,
    BuildService,
    GenerateRequest,
    build_request_from_payload,
    get_build_service,
)

__all__ = [
    "BuildOutcome",
    "BuildService",
    "GenerateRequest",
    "build_request_from_payload",
    "create_app",
    "get_build_service",
]
