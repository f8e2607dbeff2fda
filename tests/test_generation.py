"""Tests for the generation service."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from buildprompt.errors import (
    EmptyModelResponseError,
    InvalidResponseStructureError,
    ModelConfigError,
    ModelEndpointError,
    UnparseableResponseError,
)
from buildprompt.generation import (
    BuildRequest,
    CodingAgent,
    GenerationService,
    ModelResponse,
)


@pytest.fixture
def model_client():
    """Provide a mock model client."""
    client = MagicMock()
    client.ensure_configured = MagicMock()
    client.complete = AsyncMock()
    return client


@pytest.fixture
def service(model_client, test_settings):
    """Provide a generation service around the mock client."""
    return GenerationService(client=model_client, settings=test_settings)


@pytest.fixture
def build_request():
    return BuildRequest(idea="A recipe sharing app", agent=CodingAgent.CURSOR)


class TestGenerateBuild:
    """Tests for GenerationService.generate_build."""

    @pytest.mark.asyncio
    async def test_generates_build(self, service, model_client, build_request, sample_build_json, fixed_now):
        """Test a good answer becomes a build with the reported tokens."""
        model_client.complete.return_value = ModelResponse(content=sample_build_json, tokens_used=900)

        result = await service.generate_build(build_request, now=fixed_now)

        assert result.project_name == "Recipe Share"
        assert result.tokens_used == 900
        assert result.current_as_of == "October 19, 2026"
        model_client.complete.assert_awaited_once()
        system_prompt, user_prompt = model_client.complete.call_args.args
        assert "October 19, 2026" in system_prompt
        assert "CODING AGENT: cursor" in user_prompt

    @pytest.mark.asyncio
    async def test_retries_endpoint_failures(self, service, model_client, build_request, sample_build_json):
        """Test transient endpoint errors are retried."""
        model_client.complete.side_effect = [
            ModelEndpointError("down"),
            ModelEndpointError("still down"),
            ModelResponse(content=sample_build_json, tokens_used=10),
        ]

        result = await service.generate_build(build_request)

        assert result.project_name == "Recipe Share"
        assert model_client.complete.await_count == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, service, model_client, build_request):
        """Test the last endpoint error surfaces after four attempts."""
        model_client.complete.side_effect = ModelEndpointError("down")

        with pytest.raises(ModelEndpointError):
            await service.generate_build(build_request)

        assert model_client.complete.await_count == 4

    @pytest.mark.asyncio
    async def test_config_error_not_retried(self, service, model_client, build_request):
        """Test a missing key fails before any model call."""
        model_client.ensure_configured.side_effect = ModelConfigError("no key")

        with pytest.raises(ModelConfigError):
            await service.generate_build(build_request)

        model_client.complete.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [None, ""])
    async def test_empty_response(self, service, model_client, build_request, content):
        """Test empty content is an error and is not retried."""
        model_client.complete.return_value = ModelResponse(content=content, tokens_used=5)

        with pytest.raises(EmptyModelResponseError):
            await service.generate_build(build_request)

        assert model_client.complete.await_count == 1

    @pytest.mark.asyncio
    async def test_unparseable_response_not_retried(self, service, model_client, build_request):
        """Test malformed output fails once without retrying."""
        model_client.complete.return_value = ModelResponse(content="Sorry, no.", tokens_used=5)

        with pytest.raises(UnparseableResponseError):
            await service.generate_build(build_request)

        assert model_client.complete.await_count == 1

    @pytest.mark.asyncio
    async def test_invalid_structure(self, service, model_client, build_request):
        """Test output missing required fields is rejected."""
        model_client.complete.return_value = ModelResponse(content='{"projectName": "x"}', tokens_used=5)

        with pytest.raises(InvalidResponseStructureError):
            await service.generate_build(build_request)


class TestValidateIdea:
    """Tests for GenerationService.validate_idea."""

    @pytest.mark.asyncio
    async def test_valid_idea(self, service, model_client):
        """Test a positive verdict with feedback."""
        model_client.complete.return_value = ModelResponse(
            content='{"valid": true, "feedback": "Looks good"}'
        )

        verdict = await service.validate_idea("A recipe app")

        assert verdict.valid is True
        assert verdict.feedback == "Looks good"

    @pytest.mark.asyncio
    async def test_invalid_idea(self, service, model_client):
        """Test a negative verdict is passed through."""
        model_client.complete.return_value = ModelResponse(
            content='```json\n{"valid": false, "feedback": "Too vague"}\n```'
        )

        verdict = await service.validate_idea("stuff")

        assert verdict.valid is False
        assert verdict.feedback == "Too vague"

    @pytest.mark.asyncio
    async def test_endpoint_failure_counts_as_valid(self, service, model_client):
        """Test validation never blocks on errors."""
        model_client.complete.side_effect = ModelEndpointError("down")

        verdict = await service.validate_idea("A recipe app")

        assert verdict.valid is True
        assert verdict.feedback is None

    @pytest.mark.asyncio
    async def test_garbage_counts_as_valid(self, service, model_client):
        """Test unparseable verdicts count as valid."""
        model_client.complete.return_value = ModelResponse(content="maybe?")

        verdict = await service.validate_idea("A recipe app")

        assert verdict.valid is True
