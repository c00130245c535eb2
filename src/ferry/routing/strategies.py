"""Route matching strategies.

A strategy is built from a route's ``options`` and implements::

    match(path) -> dict[str, str] | None     # dispatch params, or no match
    assemble(params) -> str                  # URL for the given params

Built-in strategies, registered by name:

- ``Standard``  ``/<module>/<controller>/<action>/<key>-<value>/...``
- ``Home``      the site root only
- ``Api``       ``Standard`` below a required prefix, module required
- ``Feed``      ``Standard`` below a required prefix, adds ``format``
- ``User``      ``/system/user/<controller>/<action>/...`` in the system module

Any other route ``type`` is a dotted import path to a strategy class,
resolved when the table is loaded.
"""

import importlib
import re
from collections.abc import Callable, Mapping
from typing import Any, ClassVar, Protocol
from urllib.parse import quote, unquote

from ferry.errors import RouteLoadError

_SEGMENT_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
_STRUCTURE = ("module", "controller", "action")


class RouteStrategy(Protocol):
    """Matches request paths and generates URLs for one route."""

    def match(self, path: str) -> dict[str, str] | None: ...

    def assemble(self, params: Mapping[str, Any]) -> str: ...


class StandardRoute:
    """Path-segment matcher: module, controller, action, then key/value params.

    Options:
        prefix: Path the route is mounted below (``"/admin"``).
        structure_delimiter: Separates module, controller, action.
        param_delimiter: Separates parameter pairs.
        key_value_delimiter: Separates a parameter's key and value.
        defaults: Dispatch values for missing parts.
    """

    DEFAULTS: ClassVar[dict[str, str]] = {
        "module": "system",
        "controller": "index",
        "action": "index",
    }
    OPTIONS: ClassVar[frozenset[str]] = frozenset(
        {"prefix", "structure_delimiter", "param_delimiter", "key_value_delimiter", "defaults"}
    )
    prefix_required: ClassVar[bool] = False

    __slots__ = ("defaults", "key_value_delimiter", "param_delimiter", "prefix", "structure_delimiter")

    def __init__(self, options: Mapping[str, Any]) -> None:
        unknown = set(options) - self.OPTIONS
        if unknown:
            msg = f"{type(self).__name__} does not accept option(s): {', '.join(sorted(unknown))}"
            raise RouteLoadError(msg)
        self.prefix = _normalize_prefix(options.get("prefix", ""))
        if self.prefix_required and not self.prefix:
            msg = f"{type(self).__name__} requires a prefix"
            raise RouteLoadError(msg)
        self.structure_delimiter = _delimiter(options, "structure_delimiter", "/")
        self.param_delimiter = _delimiter(options, "param_delimiter", "/")
        self.key_value_delimiter = _delimiter(options, "key_value_delimiter", "-")
        defaults = options.get("defaults", {})
        if not isinstance(defaults, Mapping):
            msg = f"Route defaults must be a mapping, got {type(defaults).__name__}"
            raise RouteLoadError(msg)
        self.defaults = {**self.DEFAULTS, **{k: str(v) for k, v in defaults.items()}}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(prefix={self.prefix!r})"

    # -- Matching ----------------------------------------------------------

    def _strip_prefix(self, path: str) -> str | None:
        path = "/" + path.split("?", 1)[0].strip("/")
        if not self.prefix:
            return path.strip("/")
        if path == self.prefix:
            return ""
        if path.startswith(self.prefix + "/"):
            return path[len(self.prefix) + 1 :].strip("/")
        return None

    def _split(self, remaining: str) -> tuple[list[str], list[str]] | None:
        """Split into structure segments and raw parameter parts."""
        if not remaining:
            return [], []
        if self.structure_delimiter != self.param_delimiter:
            head, _, tail = remaining.partition(self.param_delimiter)
            structure = [s for s in head.split(self.structure_delimiter) if s]
            parts = [p for p in tail.split(self.param_delimiter) if p]
        else:
            pieces = [p for p in remaining.split(self.param_delimiter) if p]
            structure = []
            for piece in pieces:
                if len(structure) == len(_STRUCTURE) or self.key_value_delimiter in piece:
                    break
                structure.append(piece)
            parts = pieces[len(structure) :]
        if len(structure) > len(_STRUCTURE):
            return None
        if not all(_SEGMENT_RE.match(s) for s in structure):
            return None
        return structure, parts

    def _params(self, parts: list[str]) -> dict[str, str] | None:
        params: dict[str, str] = {}
        if self.key_value_delimiter == self.param_delimiter:
            if len(parts) % 2:
                return None
            for key, value in zip(parts[::2], parts[1::2], strict=True):
                params[unquote(key)] = unquote(value)
            return params
        for part in parts:
            key, sep, value = part.partition(self.key_value_delimiter)
            if not sep or not key:
                return None
            params[unquote(key)] = unquote(value)
        return params

    def match(self, path: str) -> dict[str, str] | None:
        remaining = self._strip_prefix(path)
        if remaining is None:
            return None
        split = self._split(remaining)
        if split is None:
            return None
        structure, parts = split
        params = self._params(parts)
        if params is None:
            return None
        result = dict(self.defaults)
        result.update(zip(_STRUCTURE, structure, strict=False))
        result.update(params)
        return result

    # -- Generation --------------------------------------------------------

    def assemble(self, params: Mapping[str, Any]) -> str:
        merged = {**self.defaults, **{k: str(v) for k, v in params.items()}}
        structure = [merged[key] for key in _STRUCTURE]
        extra = self._extra(merged, _STRUCTURE)
        if not extra:
            # Trailing defaults are implied
            while structure and structure[-1] == self.defaults[_STRUCTURE[len(structure) - 1]]:
                structure.pop()
        return self._build(self.structure_delimiter.join(structure), extra)

    def _extra(self, merged: Mapping[str, str], skip: tuple[str, ...]) -> dict[str, str]:
        """Parameters that are not structure and differ from the defaults."""
        return {
            k: v for k, v in merged.items() if k not in skip and self.defaults.get(k) != v
        }

    def _encode(self, text: str) -> str:
        """Quote *text* so neither parameter delimiter appears in it literally."""
        quoted = quote(text, safe="")
        for delimiter in (self.key_value_delimiter, self.param_delimiter):
            if delimiter in quoted:
                escaped = "".join(f"%{byte:02X}" for byte in delimiter.encode())
                quoted = quoted.replace(delimiter, escaped)
        return quoted

    def _build(self, head: str, extra: Mapping[str, str]) -> str:
        pairs = [
            f"{self._encode(k)}{self.key_value_delimiter}{self._encode(v)}"
            for k, v in extra.items()
        ]
        tail = self.param_delimiter.join(pairs)
        body = self.param_delimiter.join(part for part in (head, tail) if part)
        return f"{self.prefix}/{body}" if body else self.prefix or "/"


class HomeRoute(StandardRoute):
    """Matches the site root and dispatches to the defaults."""

    __slots__ = ()

    def match(self, path: str) -> dict[str, str] | None:
        remaining = self._strip_prefix(path)
        if remaining != "":
            return None
        return dict(self.defaults)

    def assemble(self, params: Mapping[str, Any]) -> str:
        return self.prefix or "/"


class ApiRoute(StandardRoute):
    """Module-addressed API endpoints below a prefix (``/api/<module>/...``)."""

    prefix_required = True

    __slots__ = ()

    def match(self, path: str) -> dict[str, str] | None:
        remaining = self._strip_prefix(path)
        if not remaining:
            return None
        return super().match(path)


class FeedRoute(StandardRoute):
    """Module feeds below a prefix; ``format`` defaults to ``rss``."""

    DEFAULTS: ClassVar[dict[str, str]] = {
        "module": "system",
        "controller": "feed",
        "action": "index",
        "format": "rss",
    }
    prefix_required = True

    __slots__ = ()


class UserRoute(StandardRoute):
    """System user pages: ``/system/user/<controller>/<action>/...``.

    A numeric first segment addresses a user profile:
    ``/system/user/42`` → ``profile`` controller with ``uid=42``.
    """

    __slots__ = ()

    def __init__(self, options: Mapping[str, Any]) -> None:
        super().__init__({"prefix": "/system/user", **options})

    def match(self, path: str) -> dict[str, str] | None:
        remaining = self._strip_prefix(path)
        if remaining is None:
            return None
        pieces = [p for p in remaining.split(self.param_delimiter) if p]
        result = dict(self.defaults)
        if pieces and pieces[0].isdigit():
            result.update(controller="profile", uid=pieces.pop(0))
        structure: list[str] = []
        for piece in pieces:
            if len(structure) == 2 or self.key_value_delimiter in piece or "uid" in result:
                break
            if not _SEGMENT_RE.match(piece):
                return None
            structure.append(piece)
        params = self._params(pieces[len(structure) :])
        if params is None:
            return None
        result.update(zip(("controller", "action"), structure, strict=False))
        result.update(params)
        result["module"] = self.defaults["module"]
        return result

    def assemble(self, params: Mapping[str, Any]) -> str:
        merged = {**self.defaults, **{k: str(v) for k, v in params.items()}}
        merged.pop("module", None)
        uid = merged.pop("uid", None)
        if uid is not None and merged.get("controller") == "profile":
            merged.pop("controller")
            extra = self._extra(merged, ("action",))
            return self._build(uid, extra)
        structure = [merged["controller"], merged["action"]]
        extra = self._extra(merged, ("controller", "action"))
        if uid is not None:
            extra["uid"] = uid
        if not extra:
            while structure and structure[-1] == "index":
                structure.pop()
        return self._build(self.structure_delimiter.join(structure), extra)


# Registry of built-in strategies by lower-cased type name
STRATEGIES: dict[str, Callable[[Mapping[str, Any]], RouteStrategy]] = {
    "standard": StandardRoute,
    "home": HomeRoute,
    "api": ApiRoute,
    "feed": FeedRoute,
    "user": UserRoute,
}


def resolve_strategy(type_name: str) -> Callable[[Mapping[str, Any]], RouteStrategy]:
    """Look up a registered strategy or import it from a dotted path.

    Accepts ``"Standard"``, ``"package.module.ClassName"`` or
    ``"package.module:ClassName"``.

    Raises:
        RouteLoadError: If the type is neither registered nor importable.
    """
    registered = STRATEGIES.get(type_name.lower())
    if registered is not None:
        return registered

    if ":" in type_name:
        module_path, _, attr_name = type_name.partition(":")
    else:
        module_path, _, attr_name = type_name.rpartition(".")
    if not module_path or not attr_name:
        available = ", ".join(sorted(STRATEGIES))
        msg = f"Unknown route type {type_name!r}. Registered types: {available}"
        raise RouteLoadError(msg)
    try:
        module = importlib.import_module(module_path)
        strategy = getattr(module, attr_name)
    except (ImportError, AttributeError) as exc:
        msg = f"Cannot import route type {type_name!r}: {exc}"
        raise RouteLoadError(msg) from exc
    if not callable(strategy):
        msg = f"Route type {type_name!r} resolved to {type(strategy).__name__}, not a strategy"
        raise RouteLoadError(msg)
    return strategy


def _normalize_prefix(value: Any) -> str:
    if not isinstance(value, str):
        msg = f"Route prefix must be a string, got {type(value).__name__}"
        raise RouteLoadError(msg)
    value = value.strip("/")
    return f"/{value}" if value else ""


def _delimiter(options: Mapping[str, Any], key: str, default: str) -> str:
    value = options.get(key, default)
    if not isinstance(value, str) or not value:
        msg = f"Route option {key!r} must be a non-empty string, got {value!r}"
        raise RouteLoadError(msg)
    return value
