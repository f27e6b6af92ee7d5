"""Tests for perch.cli._resolve — Runtime import resolution."""

import types

import pytest

from perch.cli._resolve import load_table, resolve_runtime
from perch.runtime import Runtime


@pytest.fixture
def _fake_runtime_module(monkeypatch: pytest.MonkeyPatch) -> None:
    """Register a fake module with a perch Runtime on sys.modules."""
    mod = types.ModuleType("_fake_perch_app")
    mod.runtime = Runtime()  # type: ignore[attr-defined]
    mod.custom = Runtime()  # type: ignore[attr-defined]
    mod.create_runtime = Runtime  # type: ignore[attr-defined]
    mod.not_a_runtime = "just a string"  # type: ignore[attr-defined]

    def broken_factory() -> Runtime:
        raise RuntimeError("boom")

    mod.broken_factory = broken_factory  # type: ignore[attr-defined]
    monkeypatch.setitem(__import__("sys").modules, "_fake_perch_app", mod)


@pytest.mark.usefixtures("_fake_runtime_module")
class TestResolveRuntime:
    def test_explicit_attribute(self) -> None:
        assert isinstance(resolve_runtime("_fake_perch_app:runtime"), Runtime)

    def test_custom_attribute(self) -> None:
        runtime = resolve_runtime("_fake_perch_app:custom")
        assert runtime is __import__("sys").modules["_fake_perch_app"].custom

    def test_default_attribute(self) -> None:
        """Omitting :attr defaults to 'runtime'."""
        runtime = resolve_runtime("_fake_perch_app")
        assert runtime is __import__("sys").modules["_fake_perch_app"].runtime

    def test_factory(self) -> None:
        assert isinstance(resolve_runtime("_fake_perch_app:create_runtime"), Runtime)

    def test_failing_factory(self) -> None:
        with pytest.raises(TypeError, match="raised an error"):
            resolve_runtime("_fake_perch_app:broken_factory")

    def test_not_a_runtime(self) -> None:
        with pytest.raises(TypeError, match="not a perch.Runtime"):
            resolve_runtime("_fake_perch_app:not_a_runtime")

    def test_missing_attribute(self) -> None:
        with pytest.raises(AttributeError):
            resolve_runtime("_fake_perch_app:nonexistent")


class TestResolveErrors:
    def test_missing_module(self) -> None:
        with pytest.raises(ModuleNotFoundError):
            resolve_runtime("_nonexistent_perch_module_xyz")


class TestLoadTable:
    def test_loads_routes(self) -> None:
        runtime = Runtime()
        runtime.register("app.routes", [{"path": "/", "controller": "home", "method": "show"}])

        load_table(runtime, "app.routes")

        assert [r.path for r in runtime.routes] == ["/"]

    def test_none_is_a_no_op(self) -> None:
        runtime = Runtime()
        load_table(runtime, None)
        assert runtime.routes == []
