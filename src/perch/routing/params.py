"""Path parameter patterns.

Built-in converters for route segments like ``{id:int}``. Captured
values stay strings; the converter only constrains what matches.
"""

import re

# regex pattern for each supported converter
CONVERTERS: dict[str, str] = {
    "str": r"[^/]+",
    "int": r"\d+",
    "float": r"\d+(?:\.\d+)?",
    "path": r".+",
}


def compile_converter(param_type: str) -> re.Pattern[str]:
    """Return the anchored regex for *param_type*.

    Raises ``KeyError`` if *param_type* is not a registered converter.
    """
    return re.compile(f"^{CONVERTERS[param_type]}$")
