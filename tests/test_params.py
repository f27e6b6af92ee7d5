"""Tests for perch.routing.params — path parameter converters."""

import pytest

from perch.routing.params import CONVERTERS, compile_converter


class TestConverters:
    @pytest.mark.parametrize(
        ("param_type", "value", "matches"),
        [
            ("str", "hello", True),
            ("str", "a/b", False),
            ("int", "42", True),
            ("int", "4.2", False),
            ("float", "4.2", True),
            ("float", "abc", False),
            ("path", "a/b/c", True),
        ],
    )
    def test_match(self, param_type: str, value: str, matches: bool) -> None:
        assert bool(compile_converter(param_type).match(value)) is matches

    def test_unknown(self) -> None:
        with pytest.raises(KeyError):
            compile_converter("uuid")

    def test_builtin_names(self) -> None:
        assert set(CONVERTERS) == {"str", "int", "float", "path"}
