"""``perch check`` — verify that every route can be dispatched.

For each registered route, loads the controller export through the
runtime's module loader (without instantiating it) and checks that it
defines the route method. Exits with status 1 if anything is missing.
"""

import argparse
import asyncio
import sys

from perch.cli._resolve import load_table, resolve_runtime
from perch.controller import route_method
from perch.errors import ConfigurationError, ModuleLoadError
from perch.runtime import Runtime


async def collect_problems(runtime: Runtime) -> list[str]:
    """Return one message per route that cannot be dispatched."""
    problems: list[str] = []
    exports: dict[str, object] = {}

    for route in runtime.routes:
        if route.controller not in exports:
            try:
                exports[route.controller] = await runtime.modules.load(route.controller)
            except ModuleLoadError as exc:
                problems.append(
                    f"{route.path}: cannot load controller {route.controller!r} ({exc})"
                )
                exports[route.controller] = None
                continue

        export = exports[route.controller]
        if export is None:
            continue
        if route_method(export, route.method) is None:
            problems.append(
                f"{route.path}: controller {route.controller!r} has no method {route.method!r}"
            )
    return problems


def run_check(args: argparse.Namespace) -> None:
    try:
        runtime = resolve_runtime(args.runtime)
        load_table(runtime, args.table)
    except (ModuleNotFoundError, AttributeError, TypeError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    problems = asyncio.run(collect_problems(runtime))
    if problems:
        for problem in problems:
            print(problem, file=sys.stderr)
        print(f"\n{len(problems)} problem(s) in {len(runtime.routes)} route(s).", file=sys.stderr)
        raise SystemExit(1)

    print(f"All {len(runtime.routes)} route(s) OK.")
