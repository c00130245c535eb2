"""``ferry routes`` and ``ferry match`` — inspect a route table.

Both commands load the table exactly as the application would, so a
duplicate name or unknown route type is reported here too.
"""

import argparse
import sys

from ferry.cli._resolve import resolve_table
from ferry.errors import NotFound, RouteLoadError
from ferry.routing.router import Router, load_routes


def _load(args: argparse.Namespace) -> Router:
    try:
        table = resolve_table(args.table)
        return load_routes(table, section=args.section)
    except (ModuleNotFoundError, AttributeError, TypeError, RouteLoadError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


def run_routes(args: argparse.Namespace) -> None:
    """Print PRIORITY, NAME, SECTION, and TYPE for each route in matching order."""
    router = _load(args)
    routes = router.routes
    if not routes:
        print("No routes registered.")
        return

    rows = [(str(r.priority), r.name, r.section, r.type) for r in routes]
    headers = ("PRIORITY", "NAME", "SECTION", "TYPE")
    widths = [max(len(headers[i]), *(len(row[i]) for row in rows)) for i in range(3)]

    fmt = f"{{:>{widths[0]}}}  {{:<{widths[1]}}}  {{:<{widths[2]}}}  {{}}"
    print(fmt.format(*headers))
    sep_len = sum(widths) + 6 + max(len(row[3]) for row in rows)
    print("-" * min(sep_len, 80))
    for row in rows:
        print(fmt.format(*row))


def run_match(args: argparse.Namespace) -> None:
    """Print the matching route and its dispatch parameters; exit 1 on a miss."""
    router = _load(args)
    try:
        match = router.match(args.path)
    except NotFound as exc:
        print(f"No route matches {args.path!r}", file=sys.stderr)
        raise SystemExit(1) from exc

    print(f"route: {match.name} ({match.route.type})")
    for key, value in match.params.items():
        print(f"{key}: {value}")
