"""Template engine strategies.

Implements placeholder parsing, value validation and variable resolution.
"""

from promptier.strategies.template_engine.engine import (
    ResolvedTemplate,
    VariableResolutionEngine,
    render_entries,
)
from promptier.strategies.template_engine.parser import TemplateParser, iter_placeholders

__all__ = [
    "ResolvedTemplate",
    "TemplateParser",
    "VariableResolutionEngine",
    "iter_placeholders",
    "render_entries",
]
