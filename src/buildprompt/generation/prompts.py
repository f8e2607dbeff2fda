"""Prompt construction for build generation."""

from datetime import datetime

from buildprompt.generation.models import BuildRequest, CodingAgent
from buildprompt.generation.utils import get_current_date_for_prompt

# Must stay in sync with parse_build_response
BUILD_RESPONSE_SCHEMA = """{
  "projectName": "string - A catchy, descriptive project name",
  "summary": "string - 2-3 sentence summary of what will be built",
  "feasibilityScore": number 1-10 (10 being highly feasible with current tech),
  "techStackRecommendation": {
    "frontend": ["array of recommended frontend technologies with versions"],
    "backend": ["array of recommended backend technologies with versions"],
    "database": ["array of recommended database solutions"],
    "deployment": ["array of deployment platforms"],
    "other": ["other tools, libraries, or services needed"]
  },
  "guide": [
    {
      "step": number,
      "title": "string - Step title",
      "description": "string - Brief description",
      "details": "string - Detailed explanation with code examples where relevant",
      "codeExample": "string or null - Actual code snippet if applicable",
      "tips": ["array of pro tips for this step"]
    }
  ],
  "prompts": [
    {
      "title": "string - Prompt title (e.g., 'Initial Setup')",
      "description": "string - What this prompt accomplishes",
      "prompt": "string - The actual prompt to paste into the coding agent",
      "order": number
    }
  ],
  "estimatedComplexity": "beginner" | "intermediate" | "advanced"
}"""

AGENT_INSTRUCTIONS: dict[CodingAgent, str] = {
    CodingAgent.CLAUDE_PROJECTS: """AGENT-SPECIFIC INSTRUCTIONS FOR CLAUDE PROJECTS:
- Prompts should leverage Claude's multi-file project context
- Structure prompts to use Claude's artifact feature for code generation
- Include instructions to create project knowledge files
- Utilize Claude's ability to reference multiple files in a single conversation""",
    CodingAgent.CURSOR: """AGENT-SPECIFIC INSTRUCTIONS FOR CURSOR:
- Prompts should be optimized for Cursor's Composer feature
- Include @file references for context when appropriate
- Structure tasks for Cursor's inline editing and chat modes
- Leverage Cursor's ability to apply changes across multiple files""",
    CodingAgent.REPLIT: """AGENT-SPECIFIC INSTRUCTIONS FOR REPLIT AGENT:
- Prompts should work with Replit's web-based development environment
- Include deployment instructions using Replit's hosting
- Consider Replit's package management and environment setup
- Optimize for Replit's collaborative features""",
    CodingAgent.VSCODE_COPILOT: """AGENT-SPECIFIC INSTRUCTIONS FOR VS CODE + COPILOT:
- Prompts should be structured for Copilot Chat
- Include context markers for Copilot to understand file structure
- Leverage Copilot's /fix, /explain, and /tests slash commands
- Structure for inline suggestions and chat-based development""",
    CodingAgent.WINDSURF: """AGENT-SPECIFIC INSTRUCTIONS FOR WINDSURF:
- Prompts should leverage Windsurf's Cascade feature
- Structure for Windsurf's agentic multi-file editing
- Include flow-based development instructions
- Optimize for Windsurf's context understanding""",
    CodingAgent.CUSTOM: """AGENT-SPECIFIC INSTRUCTIONS:
- Create generic but effective prompts
- Include clear context and requirements in each prompt
- Structure prompts to be self-contained and actionable
- Provide explicit success criteria for each task""",
}

IDEA_VALIDATOR_SYSTEM_PROMPT = (
    "You are a quick project feasibility validator. "
    'Respond ONLY with JSON: {"valid": boolean, "feedback": "string"}'
)


def get_agent_instructions(agent: CodingAgent | str) -> str:
    """Get the guidance block for a coding agent.

    Unknown agents get the generic custom-agent guidance.
    """
    try:
        return AGENT_INSTRUCTIONS[CodingAgent(agent)]
    except ValueError:
        return AGENT_INSTRUCTIONS[CodingAgent.CUSTOM]


def build_system_prompt(now: datetime | None = None) -> str:
    """Build the system prompt, pinned to today's date."""
    current_date = get_current_date_for_prompt(now)

    return f"""You are BuildPrompt AI, an expert software architect and development guide generator. Your task is to analyze project ideas and create comprehensive, actionable build guides with tailored prompts for specific coding agents.

CRITICAL INSTRUCTIONS:
1. The current date is {current_date}. ALL recommendations must reference the latest stable versions of libraries, frameworks, and tools available as of this date.
2. For libraries and frameworks, always specify exact version numbers (e.g., "React 19.0.0", "Next.js 15.0.1", "Node.js 22.4.0").
3. Ignore any pre-2024 practices that have been superseded. Use modern patterns and best practices only.
4. Security is paramount - never suggest patterns that could introduce vulnerabilities (no eval(), no unsanitized inputs, proper authentication, etc.).
5. Structure your response ONLY as valid JSON matching the exact schema provided.

You must evaluate the feasibility of ideas honestly. If an idea has significant technical challenges or is not feasible with current technology, reflect this in your feasibilityScore and provide constructive alternatives."""


def build_user_prompt(request: BuildRequest) -> str:
    """Build the user prompt for a build request."""
    agent = request.agent.value
    if request.custom_agent:
        agent = f"{agent} ({request.custom_agent})"

    tech_stack = f"PREFERRED TECH STACK: {request.tech_stack}" if request.tech_stack else ""
    context = (
        f"ADDITIONAL CONTEXT: {request.additional_context}"
        if request.additional_context
        else ""
    )

    return f"""Generate a complete build guide and coding prompts for the following project:

PROJECT IDEA: {request.idea}

CODING AGENT: {agent}

{tech_stack}

{context}

{get_agent_instructions(request.agent)}

Respond with ONLY a JSON object in the following exact structure (no markdown, no explanations outside JSON):

{BUILD_RESPONSE_SCHEMA}

Generate at least 8-12 detailed guide steps and 4-6 actionable prompts tailored to the specified coding agent."""


def build_idea_validation_prompt(idea: str) -> str:
    """Build the user prompt for a quick feasibility check."""
    return (
        "Is this a valid, feasible software project idea that can be built "
        f'with current technology? Idea: "{idea}"'
    )
