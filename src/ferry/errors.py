"""Ferry exception hierarchy.

Shared across the upload configurator, transfer adapters, and the router
so every module raises and catches the same types.
"""

from dataclasses import dataclass


class FerryError(Exception):
    """Base for all ferry-specific errors."""


class ConfigurationError(FerryError):
    """Raised when upload or route configuration is invalid."""


class PathError(FerryError):
    """Raised when an upload destination cannot be resolved or created."""

    def __init__(self, message: str, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class RenameError(FerryError):
    """Raised when a rename strategy fails to produce a filename.

    A failing name generator is a programming mistake, not bad user
    input, so this is never collected as a validation message.
    """


class RouteLoadError(ConfigurationError):
    """Raised while loading a route table: duplicate names, unknown types."""


@dataclass(frozen=True, slots=True)
class HTTPError(FerryError):
    """An error that maps directly to an HTTP status code."""

    status: int
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """404 — no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)
