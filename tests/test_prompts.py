"""Tests for prompt assembly and input helpers."""

import re
from datetime import datetime, timedelta, timezone

import pytest

from buildprompt.generation import (
    BuildRequest,
    CodingAgent,
    build_system_prompt,
    build_user_prompt,
    get_agent_instructions,
    sanitize_input,
)
from buildprompt.generation.prompts import AGENT_INSTRUCTIONS, BUILD_RESPONSE_SCHEMA
from buildprompt.generation.utils import generate_id, get_current_date_for_prompt, get_iso_date


class TestAgentInstructions:
    """Tests for per-agent guidance."""

    def test_every_agent_has_instructions(self):
        """Test all six agents have a guidance block."""
        for agent in CodingAgent:
            assert agent in AGENT_INSTRUCTIONS

    def test_cursor_mentions_composer(self):
        """Test Cursor guidance targets Composer."""
        assert "Composer" in get_agent_instructions(CodingAgent.CURSOR)

    def test_lookup_by_string(self):
        """Test agents can be looked up by id."""
        assert get_agent_instructions("windsurf") == AGENT_INSTRUCTIONS[CodingAgent.WINDSURF]

    def test_unknown_agent_falls_back_to_custom(self):
        """Test unknown agents get the generic guidance."""
        assert get_agent_instructions("emacs") == AGENT_INSTRUCTIONS[CodingAgent.CUSTOM]


class TestSystemPrompt:
    """Tests for the system prompt."""

    def test_embeds_current_date(self):
        """Test the prompt pins the given date."""
        prompt = build_system_prompt(datetime(2026, 10, 19, tzinfo=timezone.utc))
        assert "The current date is October 19, 2026." in prompt

    def test_requires_json_only(self):
        """Test the prompt demands JSON output."""
        assert "ONLY as valid JSON" in build_system_prompt()


class TestUserPrompt:
    """Tests for the user prompt."""

    def test_minimal_request(self):
        """Test a request with only idea and agent."""
        request = BuildRequest(idea="A todo app", agent=CodingAgent.REPLIT)
        prompt = build_user_prompt(request)

        assert "PROJECT IDEA: A todo app" in prompt
        assert "CODING AGENT: replit" in prompt
        assert "PREFERRED TECH STACK" not in prompt
        assert "ADDITIONAL CONTEXT" not in prompt
        assert AGENT_INSTRUCTIONS[CodingAgent.REPLIT] in prompt
        assert BUILD_RESPONSE_SCHEMA in prompt

    def test_optional_fields_included(self):
        """Test tech stack, context and custom agent name appear when given."""
        request = BuildRequest(
            idea="A todo app",
            agent=CodingAgent.CUSTOM,
            custom_agent="Aider",
            tech_stack="Django",
            additional_context="Must work offline",
        )
        prompt = build_user_prompt(request)

        assert "CODING AGENT: custom (Aider)" in prompt
        assert "PREFERRED TECH STACK: Django" in prompt
        assert "ADDITIONAL CONTEXT: Must work offline" in prompt


class TestSanitizeInput:
    """Tests for input sanitization."""

    def test_removes_script_tags(self):
        """Test script blocks are removed entirely."""
        assert sanitize_input("hi<script>alert(1)</script> there") == "hi there"

    def test_removes_javascript_protocol(self):
        """Test javascript: URLs are defanged."""
        assert "javascript:" not in sanitize_input("click JavaScript:alert(1)").lower()

    def test_removes_event_handlers(self):
        """Test inline handlers are stripped."""
        assert sanitize_input('<img onerror="x">') == '<img "x">'

    def test_plain_text_unchanged(self):
        """Test ordinary ideas pass through."""
        assert sanitize_input("A recipe sharing app") == "A recipe sharing app"


class TestUtils:
    """Tests for ids and date helpers."""

    def test_generate_id_format(self):
        """Test build ids look like bp_<millis>_<7 chars>."""
        assert re.fullmatch(r"bp_\d+_[0-9a-z]{7}", generate_id())

    def test_generate_id_unique(self):
        """Test ids do not repeat."""
        assert len({generate_id() for _ in range(100)}) == 100

    @pytest.mark.parametrize(
        ("now", "expected"),
        [
            (datetime(2026, 1, 3, tzinfo=timezone.utc), "January 3, 2026"),
            (datetime(2026, 12, 31, 23, 0, tzinfo=timezone.utc), "December 31, 2026"),
        ],
    )
    def test_prompt_date(self, now, expected):
        """Test the prompt date format."""
        assert get_current_date_for_prompt(now) == expected

    def test_iso_date(self):
        """Test ISO timestamps are UTC."""
        assert get_iso_date(datetime(2026, 10, 19, tzinfo=timezone.utc)) == "2026-10-19T00:00:00+00:00"

    def test_naive_datetimes_are_utc(self):
        """Test naive datetimes are read as UTC, not local time."""
        naive = datetime(2026, 12, 31, 23, 30)

        assert get_current_date_for_prompt(naive) == "December 31, 2026"
        assert get_iso_date(naive) == "2026-12-31T23:30:00+00:00"

    def test_aware_datetimes_converted_to_utc(self):
        """Test offsets are converted before formatting."""
        eastern = timezone(timedelta(hours=-5))
        now = datetime(2026, 12, 31, 22, 0, tzinfo=eastern)

        assert get_current_date_for_prompt(now) == "January 1, 2027"
