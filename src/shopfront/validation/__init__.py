"""Form validation: composable rules, clean results, and a field validator.

Usage::

    from shopfront.validation import validate, required, email, confirmed

    result = validate(form, {
        "email": [required, email],
        "password": [required, min_length(8)],
        "confirm_password": [required, confirmed("password")],
    })
    if not result:
        ...  # result.errors == {"confirm_password": ["Passwords do not match"]}

``Validator`` covers the per-field checks the controllers run one by
one (password strength, username charset, file uploads).
"""

from collections.abc import Mapping, Sequence

from shopfront.validation.result import ValidationResult
from shopfront.validation.rules import (
    Confirmed,
    Rule,
    at_least,
    confirmed,
    email,
    integer,
    matches,
    max_length,
    min_length,
    number,
    one_of,
    required,
    url,
)
from shopfront.validation.validator import Validator, sniff_mime_type

__all__ = [
    "Confirmed",
    "Rule",
    "ValidationResult",
    "Validator",
    "at_least",
    "confirmed",
    "email",
    "integer",
    "matches",
    "max_length",
    "min_length",
    "number",
    "one_of",
    "required",
    "sniff_mime_type",
    "url",
    "validate",
]


def validate(
    data: Mapping[str, str],
    rules: Mapping[str, Sequence[Rule | Confirmed]],
) -> ValidationResult:
    """Validate data against a set of rules.

    Args:
        data: Any mapping of field names to string values: ``FormData``,
            ``QueryParams``, or a plain ``dict``.
        rules: Field name mapped to a list of rules. Each rule returns an
            error message on failure, or ``None`` on success.

    Returns:
        A ``ValidationResult`` with ``.data`` (stripped values of passing
        fields) and ``.errors`` (field → list of messages).
    """
    errors: dict[str, list[str]] = {}
    cleaned: dict[str, str] = {}

    for field_name, field_rules in rules.items():
        value = (data.get(field_name) or "").strip()

        field_errors: list[str] = []
        for rule in field_rules:
            if isinstance(rule, Confirmed):
                error = rule.check(value, data)
            else:
                error = rule(value)
            if error is not None:
                field_errors.append(error)
                # No point checking length or format of a missing value
                if rule is required:
                    break

        if field_errors:
            errors[field_name] = field_errors
        else:
            cleaned[field_name] = value

    return ValidationResult(data=cleaned, errors=errors)
