"""Template engine domain models.

Pydantic models for parse results and per-variable state.
"""

import enum
import re
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SourcePosition(BaseModel):
    """Character offsets of a placeholder in the template text."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(ge=0)
    end: int = Field(ge=0)


class TemplateVariable(BaseModel):
    """A placeholder parsed from a template.

    A variable is required exactly when the placeholder supplied no default.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Trimmed placeholder name")
    default_value: str | None = Field(default=None, description="Trimmed default, if given")
    description: str | None = Field(default=None, description="Trimmed description, if given")
    is_required: bool
    source_position: SourcePosition


class ParseError(BaseModel):
    """A malformed placeholder."""

    model_config = ConfigDict(frozen=True)

    message: str
    position: SourcePosition


class TemplateParseResult(BaseModel):
    """Outcome of parsing a template.

    ``variables`` holds one entry per distinct name, in order of first
    appearance.
    """

    model_config = ConfigDict(frozen=True)

    template: str
    variables: tuple[TemplateVariable, ...] = ()
    errors: tuple[ParseError, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def variable_names(self) -> list[str]:
        return [variable.name for variable in self.variables]

    def get_variable(self, name: str) -> TemplateVariable | None:
        for variable in self.variables:
            if variable.name == name:
                return variable
        return None


class ValidationErrorKind(str, enum.Enum):
    """Kinds of per-variable validation failures."""

    MISSING_REQUIRED = "missing_required"
    INVALID_VALUE = "invalid_value"


class VariableValidationError(BaseModel):
    """A validation failure attached to a variable state."""

    model_config = ConfigDict(frozen=True)

    kind: ValidationErrorKind
    message: str
    variable_name: str | None = None
    position: SourcePosition | None = None


class ValidationRules(BaseModel):
    """Constraints applied when a variable value changes.

    ``validator`` returns an error message, or None when the value is fine.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    max_length: int | None = Field(default=None, ge=0)
    min_length: int | None = Field(default=None, ge=0)
    pattern: str | None = None
    validator: Callable[[str], str | None] | None = None

    @field_validator("pattern")
    @classmethod
    def compile_pattern(cls, v: str | None) -> str | None:
        """Reject patterns that do not compile."""
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"Invalid pattern: {e}") from e
        return v


class TemplateVariableState(BaseModel):
    """Editable state of one variable."""

    value: str = ""
    is_dirty: bool = False
    is_valid: bool = True
    errors: list[VariableValidationError] = Field(default_factory=list)

