"""codereviewer — concurrent LLM code review for a directory tree."""

__version__ = "0.3.0"
