"""Perch CLI — route table inspection and validation.

Entry point registered as ``perch`` in ``pyproject.toml``::

    [project.scripts]
    perch = "perch.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``perch`` command."""
    parser = argparse.ArgumentParser(
        prog="perch",
        description="Perch — navigation and resource runtime for single-page apps.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- perch routes -----------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List registered routes")
    routes_parser.add_argument(
        "runtime",
        help="Import string (e.g. myapp:runtime)",
    )
    routes_parser.add_argument(
        "--table",
        default=None,
        help="Route table identifier to load before listing",
    )

    # -- perch check ------------------------------------------------------
    check_parser = subparsers.add_parser(
        "check", help="Verify every route's controller loads and has its method"
    )
    check_parser.add_argument(
        "runtime",
        help="Import string (e.g. myapp:runtime)",
    )
    check_parser.add_argument(
        "--table",
        default=None,
        help="Route table identifier to load before checking",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from perch.cli._routes import run_routes

        run_routes(args)
    elif args.command == "check":
        from perch.cli._check import run_check

        run_check(args)
