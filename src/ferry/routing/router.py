"""Route table loader and the compiled router.

``load_routes()`` validates and compiles a route table once at startup;
the returned ``Router`` is immutable and shared by all requests.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeAlias

from ferry.errors import NotFound, RouteLoadError
from ferry.routing.route import RouteDescriptor, RouteMatch
from ferry.routing.strategies import RouteStrategy, resolve_strategy

logger = logging.getLogger("ferry.routing")

RouteTable: TypeAlias = Mapping[str, Mapping[str, Any]] | Iterable[RouteDescriptor | Mapping[str, Any]]


@dataclass(frozen=True, slots=True)
class _CompiledRoute:
    descriptor: RouteDescriptor
    strategy: RouteStrategy


def _descriptors(table: RouteTable) -> list[RouteDescriptor]:
    if isinstance(table, Mapping):
        return [RouteDescriptor.from_mapping(data, name=key) for key, data in table.items()]
    return [
        entry if isinstance(entry, RouteDescriptor) else RouteDescriptor.from_mapping(entry)
        for entry in table
    ]


def load_routes(table: RouteTable, section: str | None = None) -> "Router":
    """Validate and compile a route table.

    Args:
        table: Route descriptors (or mappings) in declaration order, or a
            mapping keyed by route name.
        section: Keep only routes of this section (``"front"``, ``"admin"``...).

    Returns:
        A ``Router`` trying routes by descending priority, ties in
        declaration order.

    Raises:
        RouteLoadError: On duplicate names or an unknown or misconfigured
            route type.
    """
    descriptors = _descriptors(table)

    seen: set[str] = set()
    for descriptor in descriptors:
        if descriptor.name in seen:
            msg = f"Duplicate route name {descriptor.name!r}"
            raise RouteLoadError(msg)
        seen.add(descriptor.name)

    compiled: list[_CompiledRoute] = []
    for descriptor in descriptors:
        factory = resolve_strategy(descriptor.type)
        try:
            strategy = factory(descriptor.options)
        except RouteLoadError as exc:
            msg = f"Route {descriptor.name!r}: {exc}"
            raise RouteLoadError(msg) from exc
        except (KeyError, TypeError, ValueError) as exc:
            msg = f"Route {descriptor.name!r} could not build type {descriptor.type!r}: {exc}"
            raise RouteLoadError(msg) from exc
        if section is None or descriptor.section == section:
            compiled.append(_CompiledRoute(descriptor, strategy))

    # list.sort() is stable, so equal priorities keep declaration order
    compiled.sort(key=lambda entry: -entry.descriptor.priority)
    logger.debug(
        "Loaded %d route(s)%s: %s",
        len(compiled),
        f" for section {section!r}" if section else "",
        ", ".join(entry.descriptor.name for entry in compiled),
    )
    return Router(compiled)


class Router:
    """Immutable, priority-ordered route list.

    Usage::

        router = load_routes(ROUTES)
        match = router.match("/admin/blog/article")
        url = router.assemble("api", {"module": "blog"})
    """

    __slots__ = ("_by_name", "_routes")

    def __init__(self, routes: Iterable[_CompiledRoute]) -> None:
        self._routes: tuple[_CompiledRoute, ...] = tuple(routes)
        self._by_name = {entry.descriptor.name: entry for entry in self._routes}

    @property
    def routes(self) -> tuple[RouteDescriptor, ...]:
        """Route descriptors in matching order."""
        return tuple(entry.descriptor for entry in self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def get(self, name: str) -> RouteDescriptor | None:
        entry = self._by_name.get(name)
        return entry.descriptor if entry else None

    def match(self, path: str) -> RouteMatch:
        """Return the first route, by priority, whose strategy matches *path*.

        Raises ``NotFound`` if no route matches.
        """
        for entry in self._routes:
            params = entry.strategy.match(path)
            if params is not None:
                return RouteMatch(route=entry.descriptor, params=params)
        raise NotFound(f"No route matches {path!r}")

    def assemble(self, name: str, params: Mapping[str, Any] | None = None) -> str:
        """Generate a URL through the named route's strategy.

        Raises ``NotFound`` for an unknown route name.
        """
        entry = self._by_name.get(name)
        if entry is None:
            raise NotFound(f"No route named {name!r}")
        return entry.strategy.assemble(params or {})
