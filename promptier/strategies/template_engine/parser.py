"""Placeholder parser.

Finds ``{{name}}``, ``{{name:default}}`` and ``{{name:default:description}}``
placeholders in template text. Parsing is pure, so results are memoized by
the exact template string.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass

from promptier.core.cache import ExpiringCache
from promptier.strategies.template_engine.models import (
    ParseError,
    SourcePosition,
    TemplateParseResult,
    TemplateVariable,
)

logger = logging.getLogger(__name__)


# Name and default exclude braces and colons; the description may contain
# colons. An unterminated "{{" never matches and is left as literal text.
PLACEHOLDER_PATTERN = re.compile(r"\{\{([^{}:]*)(?::([^{}:]*))?(?::([^{}]*))?\}\}")


@dataclass(frozen=True)
class Placeholder:
    """One raw placeholder occurrence, repeated names included.

    Attributes:
        name: Trimmed name (may be empty for malformed placeholders).
        default_value: Trimmed default, None when absent or blank.
        description: Trimmed description, None when absent or blank.
        start: Offset of the opening braces.
        end: Offset just past the closing braces.
    """

    name: str
    default_value: str | None
    description: str | None
    start: int
    end: int


def _clean(group: str | None) -> str | None:
    if group is None:
        return None
    stripped = group.strip()
    return stripped or None


def iter_placeholders(text: str) -> Iterator[Placeholder]:
    """Yield every placeholder occurrence in ``text``, left to right."""
    for match in PLACEHOLDER_PATTERN.finditer(text):
        yield Placeholder(
            name=match.group(1).strip(),
            default_value=_clean(match.group(2)),
            description=_clean(match.group(3)),
            start=match.start(),
            end=match.end(),
        )


class TemplateParser:
    """Parses templates into variable descriptors.

    Example:
        ```python
        parser = TemplateParser()
        result = parser.parse("Hello {{name:World:Who to greet}}")
        result.variables[0].default_value  # -> "World"
        ```
    """

    def __init__(self, cache: ExpiringCache | None = None) -> None:
        """Initialize the parser.

        Args:
            cache: Memoization cache keyed by template text. None disables
                memoization.
        """
        self._cache = cache

    @property
    def cache(self) -> ExpiringCache | None:
        return self._cache

    def parse(self, text: str) -> TemplateParseResult:
        """Parse ``text`` into distinct variables and parse errors.

        Args:
            text: The template text.

        Returns:
            The parse result. Variables are ordered by first appearance; the
            first occurrence of a name determines its metadata.
        """
        if self._cache is not None:
            cached = self._cache.get(text)
            if cached is not None:
                return cached

        result = self._parse_uncached(text)

        if self._cache is not None:
            self._cache.set(text, result)
        return result

    def used_variable_names(self, text: str) -> set[str]:
        """Return the names of all well-formed placeholders in ``text``."""
        return set(self.parse(text).variable_names)

    def iter_placeholders(self, text: str) -> Iterator[Placeholder]:
        """Yield every placeholder occurrence, repeats and empty names included."""
        return iter_placeholders(text)

    def _parse_uncached(self, text: str) -> TemplateParseResult:
        variables: list[TemplateVariable] = []
        errors: list[ParseError] = []
        seen: set[str] = set()

        for placeholder in iter_placeholders(text):
            position = SourcePosition(start=placeholder.start, end=placeholder.end)

            if not placeholder.name:
                errors.append(
                    ParseError(
                        message=f"Empty variable name at position {placeholder.start}",
                        position=position,
                    )
                )
                continue

            if placeholder.name in seen:
                continue
            seen.add(placeholder.name)

            variables.append(
                TemplateVariable(
                    name=placeholder.name,
                    default_value=placeholder.default_value,
                    description=placeholder.description,
                    is_required=placeholder.default_value is None,
                    source_position=position,
                )
            )

        if errors:
            logger.debug(f"Parsed template with {len(errors)} malformed placeholder(s)")

        return TemplateParseResult(
            template=text,
            variables=tuple(variables),
            errors=tuple(errors),
        )
