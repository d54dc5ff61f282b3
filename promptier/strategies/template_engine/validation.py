"""Per-variable value validation."""

import re

from promptier.strategies.template_engine.models import (
    TemplateVariable,
    ValidationErrorKind,
    ValidationRules,
    VariableValidationError,
)


def validate_value(
    variable: TemplateVariable,
    value: str,
    rules: ValidationRules | None = None,
) -> list[VariableValidationError]:
    """Check a value against the variable's requirements and optional rules.

    A required variable with a blank value fails with ``missing_required`` and
    no further rules are applied. Blank optional values skip the rules.

    Args:
        variable: The parsed variable.
        value: Candidate value.
        rules: Extra constraints for this variable.

    Returns:
        The validation errors; empty when the value is valid.
    """
    if not value.strip():
        if variable.is_required:
            return [
                VariableValidationError(
                    kind=ValidationErrorKind.MISSING_REQUIRED,
                    message=f"{variable.name} is required",
                    variable_name=variable.name,
                    position=variable.source_position,
                )
            ]
        return []

    if rules is None:
        return []

    messages: list[str] = []

    if rules.min_length is not None and len(value) < rules.min_length:
        messages.append(f"{variable.name} must be at least {rules.min_length} characters")

    if rules.max_length is not None and len(value) > rules.max_length:
        messages.append(f"{variable.name} must be at most {rules.max_length} characters")

    if rules.pattern is not None and not re.fullmatch(rules.pattern, value):
        messages.append(f"{variable.name} must match pattern {rules.pattern}")

    if rules.validator is not None:
        custom = rules.validator(value)
        if custom:
            messages.append(custom)

    return [
        VariableValidationError(
            kind=ValidationErrorKind.INVALID_VALUE,
            message=message,
            variable_name=variable.name,
            position=variable.source_position,
        )
        for message in messages
    ]
