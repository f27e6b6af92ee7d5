"""``perch routes`` — list registered routes.

Resolves an import string to a perch Runtime and prints every
registered pattern with its controller and method.
"""

import argparse
import sys

from perch.cli._resolve import load_table, resolve_runtime
from perch.errors import ConfigurationError


def run_routes(args: argparse.Namespace) -> None:
    """Print a table of PATTERN, CONTROLLER, and METHOD."""
    try:
        runtime = resolve_runtime(args.runtime)
        load_table(runtime, args.table)
    except (ModuleNotFoundError, AttributeError, TypeError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    routes = runtime.routes
    if not routes:
        print("No routes registered.")
        return

    rows = [(route.path, route.controller, route.method) for route in routes]

    # Column widths
    max_path = max(max(len(r[0]) for r in rows), 7)  # "PATTERN" header
    max_controller = max(max(len(r[1]) for r in rows), 10)  # "CONTROLLER" header

    fmt = f"{{:<{max_path}}}  {{:<{max_controller}}}  {{}}"
    print(fmt.format("PATTERN", "CONTROLLER", "METHOD"))
    sep_len = max_path + max_controller + 4 + max(len(r[2]) for r in rows)
    print("-" * min(sep_len, 80))
    for path, controller, method in rows:
        print(fmt.format(path, controller, method))
