"""Validation result — immutable container for the collected errors."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """The outcome of validating uploaded files against registered validators.

    The result is falsy when invalid, so you can write::

        result = validate_files(files, validators)
        if not result:
            return render_errors(result.errors)

    ``errors`` maps field names to lists of error messages::

        {"avatar": ["File 'me.exe' has a false extension"]}
    """

    errors: dict[str, list[str]]

    @property
    def is_valid(self) -> bool:
        """True if validation passed with no errors."""
        return not self.errors

    def __bool__(self) -> bool:
        """Falsy when invalid — enables ``if not result:`` pattern."""
        return self.is_valid
