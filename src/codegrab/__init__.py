"""Pick project files and pull in their project-local dependencies for an LLM bundle."""

__version__ = "0.3.0"
