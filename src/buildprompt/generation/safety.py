"""Advisory scans of generated content.

Findings are for monitoring only. They are logged and never block or
change a build result.
"""

import logging
import re
from typing import NamedTuple

from pydantic import BaseModel, Field

from buildprompt.generation.models import BuildResult

logger = logging.getLogger(__name__)


class PatternRule(NamedTuple):
    """A regex and the finding label it produces."""

    pattern: re.Pattern[str]
    label: str


def _rule(pattern: str, label: str) -> PatternRule:
    return PatternRule(re.compile(pattern, re.IGNORECASE), label)


DANGEROUS_PATTERNS: list[PatternRule] = [
    _rule(r"\beval\s*\(", "eval() usage"),
    _rule(r"\bexec\s*\(", "exec() usage"),
    _rule(r"process\.env|os\.environ|os\.getenv\s*\(", "Direct env access"),
    _rule(r"rm\s+-rf", "Destructive shell command"),
    _rule(r"DROP\s+TABLE", "SQL DROP statement"),
    _rule(r"DELETE\s+FROM\s+\w+\s*;", "SQL DELETE without WHERE"),
]

# Version cutoffs: React 18, Next.js 14, Node.js 20, Python 3.10, TypeScript 5
OUTDATED_PATTERNS: list[PatternRule] = [
    _rule(r"React\s+1[0-7]\.", "React version < 18"),
    _rule(r"Next\.?js\s+1[0-3]\.", "Next.js version < 14"),
    _rule(r"Node\.?js?\s+1[0-8]\.", "Node.js version < 20"),
    _rule(r"Python\s+3\.[0-9]\.", "Python version < 3.10"),
    _rule(r"TypeScript\s+[0-4]\.", "TypeScript version < 5"),
]


def _scan(text: str, rules: list[PatternRule]) -> list[str]:
    return [rule.label for rule in rules if rule.pattern.search(text)]


def detect_dangerous_patterns(text: str) -> list[str]:
    """List dangerous code constructs found in text."""
    return _scan(text, DANGEROUS_PATTERNS)


def check_for_outdated_references(text: str) -> list[str]:
    """List references to framework or runtime versions below the cutoffs."""
    return _scan(text, OUTDATED_PATTERNS)


class ContentWarnings(BaseModel):
    """Findings for one build."""

    build_id: str
    dangerous_patterns: list[str] = Field(default_factory=list)
    outdated_references: list[str] = Field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.dangerous_patterns or self.outdated_references)


def scan_build_result(result: BuildResult) -> ContentWarnings:
    """Scan a serialized build and log any findings.

    Args:
        result: Generated build.

    Returns:
        Findings for the build.
    """
    content = result.model_dump_json(by_alias=True)
    warnings = ContentWarnings(
        build_id=result.id,
        dangerous_patterns=detect_dangerous_patterns(content),
        outdated_references=check_for_outdated_references(content),
    )

    if warnings.has_warnings:
        logger.warning(
            "Content warnings for build %s: dangerous=%s outdated=%s",
            result.id,
            warnings.dangerous_patterns,
            warnings.outdated_references,
        )

    return warnings
