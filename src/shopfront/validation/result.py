"""Validation result: immutable container for validated data or errors."""

from dataclasses import dataclass

from shopfront.errors import ValidationFailed


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """The outcome of validating form data against a set of rules.

    ``is_valid`` is True when there are no errors.
    The result is falsy when invalid, so you can write::

        result = validate(form, rules)
        if not result:
            self.flash("error", result.first_error)
            return self.redirect("/register")

    ``data`` contains the cleaned string values for every field that
    passed. ``errors`` maps field names to lists of error messages::

        {"email": ["Must be a valid email address"]}
    """

    data: dict[str, str]
    errors: dict[str, list[str]]

    @property
    def is_valid(self) -> bool:
        """True if validation passed with no errors."""
        return not self.errors

    @property
    def first_error(self) -> str | None:
        for messages in self.errors.values():
            if messages:
                return messages[0]
        return None

    def raise_for_errors(self) -> None:
        """Raise ``ValidationFailed`` when invalid. Used by the entity layer."""
        if self.errors:
            raise ValidationFailed(self.errors)

    def __bool__(self) -> bool:
        return self.is_valid
