"""Upload configuration.

``UploadConfig`` holds process-wide settings and is a frozen dataclass:
immutable after creation, no string-key dict lookups.

``UploadOptions`` is the per-request options struct. Every field starts
as ``UNSET`` so "not provided" stays distinguishable from "provided as
``False``" (``rename=False`` disables renaming, an unset ``rename`` falls
back to the configured default).
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Final, TypeAlias

from ferry.errors import ConfigurationError


class _Unset:
    """Sentinel type for options that were not provided."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset()

RenameValue: TypeAlias = str | Callable[[str], str] | bool
SizeValue: TypeAlias = int | str


@dataclass(frozen=True, slots=True)
class UploadConfig:
    """Process-wide upload settings. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = UploadConfig(upload_root="/var/www/upload", overwrite=False)
    """

    # Relative destinations are resolved against this directory
    upload_root: str | Path = "upload"
    # Destination used when a request does not name one
    default_module: str = "system"

    # Transfer
    adapter: str = "Http"
    rename: str = "%random%"
    overwrite: bool = True


@dataclass(frozen=True, slots=True)
class SizeLimits:
    """File size bounds in bytes; byte strings such as ``"2MB"`` are accepted."""

    min: SizeValue | None = None
    max: SizeValue | None = None
    use_byte_string: bool = True

    @classmethod
    def coerce(cls, value: "SizeLimits | SizeValue | Mapping[str, Any]") -> "SizeLimits":
        """Build limits from a single maximum, a mapping, or an instance."""
        if isinstance(value, SizeLimits):
            return value
        if isinstance(value, Mapping):
            keys = {_normalize_key(k): v for k, v in value.items()}
            unknown = set(keys) - {"min", "max", "usebytestring"}
            if unknown:
                msg = f"Unknown size option(s): {', '.join(sorted(unknown))}"
                raise ConfigurationError(msg)
            return cls(
                min=keys.get("min"),
                max=keys.get("max"),
                use_byte_string=bool(keys.get("usebytestring", True)),
            )
        return cls(max=value)


@dataclass(frozen=True, slots=True)
class ImageSizeLimits:
    """Image dimension bounds in pixels. ``None`` means unbounded."""

    min_width: int | None = None
    min_height: int | None = None
    max_width: int | None = None
    max_height: int | None = None

    @classmethod
    def coerce(cls, value: "ImageSizeLimits | Mapping[str, Any]") -> "ImageSizeLimits":
        """Build limits from a mapping keyed ``minWidth``, ``min_width`` or ``minwidth``."""
        if isinstance(value, ImageSizeLimits):
            return value
        if not isinstance(value, Mapping):
            msg = f"Image size limits must be a mapping, got {type(value).__name__}"
            raise ConfigurationError(msg)
        names = {_normalize_key(f.name): f.name for f in fields(cls)}
        kwargs: dict[str, int | None] = {}
        for key, raw in value.items():
            name = names.get(_normalize_key(key))
            if name is None:
                msg = f"Unknown image size option: {key!r}"
                raise ConfigurationError(msg)
            kwargs[name] = None if raw is None else int(raw)
        return cls(**kwargs)


@dataclass(frozen=True, slots=True)
class UploadOptions:
    """Per-request upload options.

    Usage::

        options = UploadOptions(destination="avatars", rename="%term%-%date:l%")
        options = UploadOptions.from_mapping({"rename": False})
    """

    rename: RenameValue | _Unset = UNSET
    destination: str | Path | _Unset = UNSET
    extension: str | list[str] | _Unset = UNSET
    exclude_extension: str | list[str] | _Unset = UNSET
    size: SizeLimits | SizeValue | Mapping[str, Any] | _Unset = UNSET
    image_size: ImageSizeLimits | Mapping[str, Any] | _Unset = UNSET

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "UploadOptions":
        """Convert a plain options mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            msg = f"Unknown upload option(s): {', '.join(sorted(unknown))}"
            raise ConfigurationError(msg)
        return cls(**data)


def _normalize_key(key: str) -> str:
    return key.replace("_", "").lower()
