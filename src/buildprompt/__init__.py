"""BuildPrompt: project ideas in, build guides and coding-agent prompts out."""

__version__ = "0.1.0"
