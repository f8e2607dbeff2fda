"""Build request and build result models."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CodingAgent(str, Enum):
    """Coding assistants a build can be tailored for."""

    CLAUDE_PROJECTS = "claude-projects"
    CURSOR = "cursor"
    REPLIT = "replit"
    VSCODE_COPILOT = "vscode-copilot"
    WINDSURF = "windsurf"
    CUSTOM = "custom"


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, as the web client expects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CodingAgentInfo(CamelModel):
    """Display information for a coding agent."""

    id: CodingAgent
    name: str
    description: str


CODING_AGENTS: list[CodingAgentInfo] = [
    CodingAgentInfo(
        id=CodingAgent.CLAUDE_PROJECTS,
        name="Claude Projects",
        description="Anthropic's Claude with Projects feature",
    ),
    CodingAgentInfo(
        id=CodingAgent.CURSOR,
        name="Cursor",
        description="AI-first code editor with Composer",
    ),
    CodingAgentInfo(
        id=CodingAgent.REPLIT,
        name="Replit Agent",
        description="Replit's AI coding assistant",
    ),
    CodingAgentInfo(
        id=CodingAgent.VSCODE_COPILOT,
        name="VS Code + Copilot",
        description="GitHub Copilot in Visual Studio Code",
    ),
    CodingAgentInfo(
        id=CodingAgent.WINDSURF,
        name="Windsurf",
        description="Codeium's agentic IDE",
    ),
    CodingAgentInfo(
        id=CodingAgent.CUSTOM,
        name="Custom Agent",
        description="Specify your own coding environment",
    ),
]


class BuildRequest(CamelModel):
    """A sanitized request to generate a build."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    idea: str = Field(..., min_length=1, description="Project idea")
    agent: CodingAgent = Field(..., description="Target coding agent")
    custom_agent: str | None = Field(None, description="Name of a custom agent")
    tech_stack: str | None = Field(None, description="Preferred tech stack")
    additional_context: str | None = Field(None, description="Extra requirements")


class GuideStep(CamelModel):
    """One step of a build guide."""

    step: int
    title: str = ""
    description: str = ""
    details: str = ""
    code_example: str | None = None
    tips: list[str] | None = None


class AgentPrompt(CamelModel):
    """A prompt to paste into the coding agent."""

    title: str = ""
    description: str = ""
    prompt: str = ""
    order: int


Complexity = Literal["beginner", "intermediate", "advanced"]


class BuildResult(CamelModel):
    """A generated build guide with its agent prompts."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    project_name: str
    summary: str
    feasibility_score: int = Field(..., ge=1, le=10)
    tech_stack_recommendation: dict[str, list[str]] = Field(default_factory=dict)
    guide: list[GuideStep]
    prompts: list[AgentPrompt]
    estimated_complexity: Complexity
    current_as_of: str
    generated_at: str
    tokens_used: int = 0


class ModelResponse(BaseModel):
    """Content and token usage returned by the model endpoint."""

    content: str | None = None
    tokens_used: int = 0


class IdeaValidation(BaseModel):
    """Quick feasibility verdict for an idea."""

    valid: bool = True
    feedback: str | None = None
