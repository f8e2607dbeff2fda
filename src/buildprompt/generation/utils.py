"""Small helpers shared by the generation pipeline."""

import re
import secrets
import string
import time
from datetime import datetime, timezone

_SCRIPT_TAG = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_JS_PROTOCOL = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+\s*=", re.IGNORECASE)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def sanitize_input(value: str) -> str:
    """Strip script tags, javascript: URLs and inline event handlers."""
    value = _SCRIPT_TAG.sub("", value)
    value = _JS_PROTOCOL.sub("", value)
    return _EVENT_HANDLER.sub("", value)


def generate_id() -> str:
    """Generate a build id like ``bp_1760832000000_k3j9x0a``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"bp_{int(time.time() * 1000)}_{suffix}"


def _as_utc(now: datetime | None) -> datetime:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def get_current_date_for_prompt(now: datetime | None = None) -> str:
    """Format a date for prompts, e.g. ``January 3, 2026`` (UTC).

    Naive datetimes are taken as UTC.
    """
    now = _as_utc(now)
    return f"{now:%B} {now.day}, {now.year}"


def get_iso_date(now: datetime | None = None) -> str:
    """ISO-8601 timestamp in UTC."""
    return _as_utc(now).isoformat()
