"""Prompt template variable resolution."""

__version__ = "0.1.0"
