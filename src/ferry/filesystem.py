"""Filesystem service — path detection and confinement, idempotent directory creation."""

import logging
import os
import re
from pathlib import Path

from ferry.errors import PathError

logger = logging.getLogger("ferry.upload")

# C:\ or C:/ drive letters and \\server\share UNC paths
_WINDOWS_ABSOLUTE_RE = re.compile(r"^(?:[a-zA-Z]:[\\/]|\\\\)")


def is_absolute_path(value: str | Path) -> bool:
    """Return True for POSIX absolute, drive-letter, or UNC paths."""
    text = str(value)
    if not text:
        return False
    return text.startswith("/") or bool(_WINDOWS_ABSOLUTE_RE.match(text))


def resolve_under(root: str | Path, value: str | Path) -> Path:
    """Join *value* onto *root* and normalize it lexically.

    Raises:
        PathError: If the normalized path is outside *root*.
    """
    base = Path(os.path.abspath(root))
    target = Path(os.path.abspath(base / value))
    if not target.is_relative_to(base):
        msg = f"Upload destination {str(value)!r} escapes the upload root {base}"
        raise PathError(msg, str(target))
    return target


def ensure_dir(path: str | Path) -> Path:
    """Create *path* and its parents unless it already exists.

    "Already exists" is success, including when a concurrent request
    created the directory first.

    Raises:
        PathError: If the directory cannot be created, or *path* exists
            and is not a directory.
    """
    target = Path(path)
    if target.is_dir():
        return target
    try:
        target.mkdir(parents=True, exist_ok=True)
    except FileExistsError as exc:
        msg = f"Upload destination exists and is not a directory: {target}"
        raise PathError(msg, str(target)) from exc
    except OSError as exc:
        msg = f"Cannot create upload destination {target}: {exc.strerror or exc}"
        raise PathError(msg, str(target)) from exc
    logger.debug("Created upload directory %s", target)
    return target
