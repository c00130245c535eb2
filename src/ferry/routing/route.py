"""RouteDescriptor and RouteMatch frozen dataclasses."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ferry.errors import RouteLoadError


@dataclass(frozen=True, slots=True)
class RouteDescriptor:
    """A named, prioritized route definition.

    ``type`` names a registered strategy (``"Standard"``, ``"Api"``, ...)
    or a dotted import path to a strategy class. Higher ``priority``
    values are tried first.
    """

    name: str
    type: str
    priority: int = 0
    section: str = "front"
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", _freeze(self.options))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], name: str | None = None) -> "RouteDescriptor":
        """Build a descriptor from a table entry.

        *name* is the entry's key when the table is keyed by route name.

        Raises:
            RouteLoadError: On missing or mismatched fields.
        """
        route_name = data.get("name", name)
        if not route_name:
            msg = f"Route entry without a name: {dict(data)!r}"
            raise RouteLoadError(msg)
        if name is not None and route_name != name:
            msg = f"Route keyed {name!r} declares name {route_name!r}"
            raise RouteLoadError(msg)
        if not data.get("type"):
            msg = f"Route {route_name!r} has no type"
            raise RouteLoadError(msg)
        unknown = set(data) - {"name", "type", "priority", "section", "options"}
        if unknown:
            msg = f"Route {route_name!r} has unknown field(s): {', '.join(sorted(unknown))}"
            raise RouteLoadError(msg)
        try:
            priority = int(data.get("priority", 0))
        except (TypeError, ValueError) as exc:
            msg = f"Route {route_name!r} has a non-integer priority: {data.get('priority')!r}"
            raise RouteLoadError(msg) from exc
        return cls(
            name=route_name,
            type=data["type"],
            priority=priority,
            section=data.get("section", "front"),
            options=data.get("options", {}),
        )


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: RouteDescriptor
    params: dict[str, str]

    @property
    def name(self) -> str:
        return self.route.name


def _freeze(value: Any) -> Any:
    """Copy nested mappings into read-only proxies and lists into tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list | tuple):
        return tuple(_freeze(v) for v in value)
    return value
