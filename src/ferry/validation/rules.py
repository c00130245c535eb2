"""Built-in upload validation rules.

Each validator is a callable with the signature::

    def rule(upload: UploadFile) -> str | None:
        '''Return error message, or None if valid.'''

Parameterized validators are factory functions that return a validator::

    def max_size(n: int) -> FileValidator:
        def check(upload: UploadFile) -> str | None:
            if upload.size > n:
                return f"File '{upload.filename}' is too big"
            return None
        return check

Custom validators follow the same protocol: any callable matching
``(UploadFile) -> str | None`` can be registered on an adapter.
"""

import io
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeAlias

from PIL import Image

from ferry.config import ImageSizeLimits, SizeLimits, SizeValue
from ferry.errors import ConfigurationError
from ferry.http.forms import UploadFile

FileValidator: TypeAlias = Callable[[UploadFile], str | None]

_UNITS = ("B", "kB", "MB", "GB", "TB", "PB")
_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([kmgtp]?b?)\s*$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Byte strings
# ---------------------------------------------------------------------------


def format_size(size: int) -> str:
    """Render *size* bytes as a byte string: ``1536`` → ``"1.5kB"``."""
    value = float(size)
    for unit in _UNITS:
        if value < 1024 or unit == _UNITS[-1]:
            break
        value /= 1024
    return f"{round(value, 2):g}{unit}"


def parse_size(value: SizeValue) -> int:
    """Convert an integer or a byte string (``"2MB"``, ``"512 kB"``) to bytes."""
    if isinstance(value, bool):
        msg = f"Invalid file size: {value!r}"
        raise ConfigurationError(msg)
    if isinstance(value, int):
        return value
    match = _SIZE_RE.match(str(value))
    if match is None:
        msg = f"Invalid file size: {value!r}"
        raise ConfigurationError(msg)
    number, unit = match.groups()
    prefix = unit[:1].lower() if unit and unit.lower() != "b" else ""
    power = " kmgtp".index(prefix) if prefix else 0
    return int(float(number) * 1024**power)


def parse_extensions(value: str | Iterable[str]) -> frozenset[str]:
    """Normalize ``"jpg, .PNG"`` or ``["jpg", "png"]`` to lower-case names."""
    items = value.split(",") if isinstance(value, str) else value
    extensions = frozenset(item.strip().lstrip(".").lower() for item in items if item.strip())
    if not extensions:
        msg = "At least one extension is required"
        raise ConfigurationError(msg)
    return extensions


# ---------------------------------------------------------------------------
# Extension
# ---------------------------------------------------------------------------


def extension(value: str | Iterable[str]) -> FileValidator:
    """File extension must be one of *value* (case-insensitive)."""
    allowed = parse_extensions(value)

    def check(upload: UploadFile) -> str | None:
        if upload.extension not in allowed:
            return f"File '{upload.filename}' has a false extension"
        return None

    return check


def exclude_extension(value: str | Iterable[str]) -> FileValidator:
    """File extension must not be one of *value* (case-insensitive)."""
    denied = parse_extensions(value)

    def check(upload: UploadFile) -> str | None:
        if upload.extension in denied:
            return f"File '{upload.filename}' has a false extension"
        return None

    return check


# ---------------------------------------------------------------------------
# Size
# ---------------------------------------------------------------------------


def size(value: SizeLimits | SizeValue | Mapping[str, Any]) -> FileValidator:
    """File size must fall within the given bounds.

    A bare integer or byte string is the maximum size.
    """
    limits = SizeLimits.coerce(value)
    minimum = parse_size(limits.min) if limits.min is not None else None
    maximum = parse_size(limits.max) if limits.max is not None else None
    if minimum is not None and maximum is not None and minimum > maximum:
        msg = f"Minimum size {minimum} is greater than maximum size {maximum}"
        raise ConfigurationError(msg)
    show = format_size if limits.use_byte_string else str

    def check(upload: UploadFile) -> str | None:
        if maximum is not None and upload.size > maximum:
            return (
                f"Maximum allowed size for file '{upload.filename}' is "
                f"'{show(maximum)}' but '{show(upload.size)}' detected"
            )
        if minimum is not None and upload.size < minimum:
            return (
                f"Minimum expected size for file '{upload.filename}' is "
                f"'{show(minimum)}' but '{show(upload.size)}' detected"
            )
        return None

    return check


# ---------------------------------------------------------------------------
# Image dimensions
# ---------------------------------------------------------------------------


def image_dimensions(upload: UploadFile) -> tuple[int, int] | None:
    """Decode ``(width, height)`` from the image header, None if not an image."""
    try:
        with Image.open(io.BytesIO(upload.content)) as img:
            return img.size
    except (OSError, Image.DecompressionBombError):
        return None


def image_size(value: ImageSizeLimits | Mapping[str, Any]) -> FileValidator:
    """Image width and height must fall within the given bounds."""
    limits = ImageSizeLimits.coerce(value)
    for axis in ("width", "height"):
        low = getattr(limits, f"min_{axis}")
        high = getattr(limits, f"max_{axis}")
        if low is not None and high is not None and low > high:
            msg = f"Minimum {axis} {low} is greater than maximum {axis} {high}"
            raise ConfigurationError(msg)

    def check(upload: UploadFile) -> str | None:
        dimensions = image_dimensions(upload)
        if dimensions is None:
            return f"The size of image '{upload.filename}' could not be detected"
        width, height = dimensions
        for axis, actual in (("width", width), ("height", height)):
            high = getattr(limits, f"max_{axis}")
            if high is not None and actual > high:
                return (
                    f"Maximum allowed {axis} for image '{upload.filename}' "
                    f"should be '{high}' but '{actual}' detected"
                )
            low = getattr(limits, f"min_{axis}")
            if low is not None and actual < low:
                return (
                    f"Minimum expected {axis} for image '{upload.filename}' "
                    f"should be '{low}' but '{actual}' detected"
                )
        return None

    return check
