"""Ferry CLI — route table inspection.

Entry point registered as ``ferry`` in ``pyproject.toml``::

    [project.scripts]
    ferry = "ferry.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``ferry`` command."""
    parser = argparse.ArgumentParser(
        prog="ferry",
        description="Ferry — upload handling and route tables for content sites.",
    )
    subparsers = parser.add_subparsers(dest="command")

    table_help = "Import string of a route table (default: ferry.routing.table:ROUTES)"

    # -- ferry routes -----------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List routes in matching order")
    routes_parser.add_argument("--table", default=None, help=table_help)
    routes_parser.add_argument("--section", default=None, help="Only routes of this section")

    # -- ferry match ------------------------------------------------------
    match_parser = subparsers.add_parser("match", help="Show the route matching a path")
    match_parser.add_argument("path", help="Request path (e.g. /admin/blog)")
    match_parser.add_argument("--table", default=None, help=table_help)
    match_parser.add_argument("--section", default=None, help="Only routes of this section")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from ferry.cli._routes import run_routes

        run_routes(args)
    elif args.command == "match":
        from ferry.cli._routes import run_match

        run_match(args)
