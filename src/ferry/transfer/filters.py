"""Rename strategies and the ``Rename`` filter.

A strategy turns an uploaded file's source name into its stored name:

- Specified name: ``"avatar"`` is used as the new base filename
- Callable: ``lambda name: "new_" + name`` generates the full filename
- Pattern: tags are expanded each time a file is renamed

Supported pattern tags:

    ``%term%``       source filename without extension
    ``%random%``     process-unique token (see ``unique_token``)
    ``%date:l%``     long date, ``YYYYMMDDHHMMSS``
    ``%date:m%``     medium date, ``YYYYMMDD``
    ``%date:s%``     short date, ``YYYYMM``
    ``%time%``       integer Unix timestamp
    ``%microtime%``  timestamp with microseconds

Patterns and specified names keep the source file's extension.
"""

import re
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePosixPath, PureWindowsPath
from typing import Protocol

from ferry.errors import ConfigurationError, RenameError

_TAG_RE = re.compile(r"%(term|random|date:[lms]|time|microtime)%")

_DATE_FORMATS = {
    "date:l": "%Y%m%d%H%M%S",
    "date:m": "%Y%m%d",
    "date:s": "%Y%m",
}

_token_lock = threading.Lock()
_last_token = 0


def unique_token() -> str:
    """Return a 13-character hex token, strictly increasing within the process.

    Seconds and microseconds of the current time, like PHP's ``uniqid()``.
    Two calls in the same microsecond (or after a clock step back) still
    get distinct tokens.
    """
    global _last_token
    now = time.time_ns() // 1000
    value = ((now // 1_000_000) << 20) | (now % 1_000_000)
    with _token_lock:
        if value <= _last_token:
            value = _last_token + 1
        _last_token = value
    return f"{value:013x}"


def split_name(filename: str) -> tuple[str, str]:
    """Split *filename* into ``(stem, extension)``; the extension has no dot."""
    path = PurePosixPath(filename)
    return path.stem, path.suffix[1:]


def safe_basename(filename: str) -> str:
    """Strip any directory part so a generated name stays inside the destination."""
    return PureWindowsPath(PurePosixPath(filename).name).name


class RenameStrategy(Protocol):
    """Produces a stored filename from a source filename."""

    def resolve(self, original_name: str) -> str: ...


@dataclass(frozen=True, slots=True)
class NamedPattern:
    """A specified name or a tag pattern; the source extension is kept."""

    template: str

    def resolve(self, original_name: str) -> str:
        stem, extension = split_name(original_name)
        now = datetime.now()

        def expand(match: re.Match[str]) -> str:
            tag = match.group(1)
            if tag == "term":
                return stem
            if tag == "random":
                return unique_token()
            if tag == "time":
                return str(int(now.timestamp()))
            if tag == "microtime":
                return f"{now.timestamp():.6f}"
            return now.strftime(_DATE_FORMATS[tag])

        base = _TAG_RE.sub(expand, self.template)
        if extension:
            return f"{base}.{extension}"
        return base


@dataclass(frozen=True, slots=True)
class CustomGenerator:
    """A user-supplied callable receiving the source name, returning the new name."""

    func: Callable[[str], str]

    def resolve(self, original_name: str) -> str:
        try:
            result = self.func(original_name)
        except Exception as exc:
            name = getattr(self.func, "__name__", repr(self.func))
            msg = f"Rename generator {name} failed for {original_name!r}: {exc}"
            raise RenameError(msg) from exc
        if not isinstance(result, str):
            msg = f"Rename generator returned {type(result).__name__}, expected str"
            raise RenameError(msg)
        return result


def strategy_from(value: str | Callable[[str], str] | RenameStrategy) -> RenameStrategy:
    """Resolve a configured rename value into a strategy."""
    if isinstance(value, (NamedPattern, CustomGenerator)):
        return value
    if isinstance(value, str):
        if not value:
            msg = "Rename pattern must not be empty"
            raise ConfigurationError(msg)
        return NamedPattern(value)
    if callable(value):
        return CustomGenerator(value)
    if hasattr(value, "resolve"):
        return value
    msg = f"Unsupported rename strategy: {value!r}"
    raise ConfigurationError(msg)


class Rename:
    """Transfer filter that renames each uploaded file.

    Usage::

        adapter.add_filter(Rename("prefix.%random%"))
        adapter.add_filter(Rename(lambda name: "new_" + name))
    """

    name = "rename"

    __slots__ = ("strategy",)

    def __init__(self, value: str | Callable[[str], str] | RenameStrategy) -> None:
        self.strategy = strategy_from(value)

    def filter(self, original_name: str) -> str:
        """Return the stored filename for *original_name*.

        Raises:
            RenameError: If the strategy fails or yields an empty name.
        """
        new_name = safe_basename(self.strategy.resolve(original_name))
        if new_name in ("", ".", ".."):
            msg = f"Rename strategy produced an empty filename for {original_name!r}"
            raise RenameError(msg)
        return new_name

    def __repr__(self) -> str:
        return f"Rename({self.strategy!r})"
