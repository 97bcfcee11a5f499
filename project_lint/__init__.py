"""project-lint - project hygiene linter and AI agent hook gate."""

__version__ = "0.1.0"
