"""Upload validation — registered rules, clean results.

Usage::

    from ferry.validation import extension, size, validate_files

    result = validate_files(form.files, {
        "extension": (extension("jpg,png"), False),
        "size": (size("2MB"), False),
    })
    if not result:
        ...  # result.errors == {"photo": ["File 'x.gif' has a false extension"]}
"""

from collections.abc import Callable, Mapping
from typing import Any

from ferry.errors import ConfigurationError
from ferry.http.forms import UploadFile
from ferry.validation.result import ValidationResult
from ferry.validation.rules import (
    FileValidator,
    exclude_extension,
    extension,
    format_size,
    image_dimensions,
    image_size,
    parse_size,
    size,
)

__all__ = [
    "VALIDATORS",
    "FileValidator",
    "ValidationResult",
    "build_validator",
    "exclude_extension",
    "extension",
    "format_size",
    "image_dimensions",
    "image_size",
    "parse_size",
    "size",
    "validate_files",
]

# Registry of validator factories, keyed by normalized name
VALIDATORS: dict[str, Callable[[Any], FileValidator]] = {
    "extension": extension,
    "excludeextension": exclude_extension,
    "size": size,
    "imagesize": image_size,
}


def normalize_name(name: str) -> str:
    """``"exclude_extension"`` / ``"ExcludeExtension"`` → ``"excludeextension"``."""
    return name.replace("_", "").lower()


def build_validator(name: str, options: Any) -> FileValidator:
    """Construct a registered validator from its options.

    Raises:
        ConfigurationError: If *name* is not registered or the options
            are invalid.
    """
    factory = VALIDATORS.get(normalize_name(name))
    if factory is None:
        available = ", ".join(sorted(VALIDATORS))
        msg = f"Unknown upload validator {name!r}. Available: {available}"
        raise ConfigurationError(msg)
    return factory(options)


def validate_files(
    files: Mapping[str, list[UploadFile]],
    validators: Mapping[str, tuple[FileValidator, bool]],
) -> ValidationResult:
    """Validate every uploaded file against every validator.

    Args:
        files: Field name → uploaded files for that field.
        validators: Validator name → ``(validator, break_chain_on_failure)``.
            Validators run in insertion order. When one flagged with
            ``break_chain_on_failure`` fails, the remaining validators
            are skipped for that file.

    Returns:
        A ``ValidationResult`` with the collected messages per field.
    """
    errors: dict[str, list[str]] = {}

    for field_name, uploads in files.items():
        if not uploads:
            errors.setdefault(field_name, []).append("No file was uploaded")
            continue
        for upload in uploads:
            file_errors: list[str] = []
            for validator, break_chain in validators.values():
                error = validator(upload)
                if error is not None:
                    file_errors.append(error)
                    if break_chain:
                        break
            if file_errors:
                errors.setdefault(field_name, []).extend(file_errors)

    return ValidationResult(errors=errors)
