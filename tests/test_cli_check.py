"""Tests for perch routes / perch check — route table listing and validation."""

import types

import pytest

from perch import Controller
from perch.cli import main
from perch.modules import ModuleRegistry
from perch.runtime import Runtime


class Articles(Controller):
    async def index(self, ctx) -> None:
        pass

    async def show(self, ctx) -> None:
        pass

    async def _secret(self, ctx) -> None:
        pass


def _install(monkeypatch: pytest.MonkeyPatch, runtime: Runtime) -> None:
    mod = types.ModuleType("_fake_perch_site")
    mod.runtime = runtime  # type: ignore[attr-defined]
    monkeypatch.setitem(__import__("sys").modules, "_fake_perch_site", mod)


class TestRoutesCommand:
    def test_lists_routes(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        runtime = Runtime()
        runtime.add_route("/articles", "articles", "index")
        runtime.add_route("/articles/:id", "articles", "show")
        _install(monkeypatch, runtime)

        main(["routes", "_fake_perch_site"])

        lines = capsys.readouterr().out.splitlines()
        assert lines[0].split() == ["PATTERN", "CONTROLLER", "METHOD"]
        assert lines[2].split() == ["/articles", "articles", "index"]
        assert lines[3].split() == ["/articles/:id", "articles", "show"]

    def test_no_routes(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        _install(monkeypatch, Runtime())

        main(["routes", "_fake_perch_site"])

        assert "No routes registered." in capsys.readouterr().out

    def test_loads_table(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        runtime = Runtime()
        runtime.register("site.routes", [{"path": "/", "controller": "home", "method": "show"}])
        _install(monkeypatch, runtime)

        main(["routes", "_fake_perch_site", "--table", "site.routes"])

        assert "home" in capsys.readouterr().out

    def test_bad_import(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["routes", "_nonexistent_perch_module_xyz"])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err

    def test_bad_table(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        _install(monkeypatch, Runtime(modules=ModuleRegistry()))

        with pytest.raises(SystemExit) as exc_info:
            main(["routes", "_fake_perch_site", "--table", "missing.routes"])
        assert exc_info.value.code == 1
        assert "missing.routes" in capsys.readouterr().err


class TestCheckCommand:
    def test_all_ok(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        runtime = Runtime()
        runtime.register("articles", Articles)
        runtime.add_route("/articles", "articles", "index")
        runtime.add_route("/articles/:id", "articles", "show")
        _install(monkeypatch, runtime)

        main(["check", "_fake_perch_site"])

        assert "All 2 route(s) OK." in capsys.readouterr().out

    def test_reports_problems(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        runtime = Runtime(modules=ModuleRegistry())
        runtime.register("articles", Articles)
        runtime.add_route("/articles/:id", "articles", "show")
        runtime.add_route("/articles/:id/edit", "articles", "edit")
        runtime.add_route("/articles/:id/leave", "articles", "on_leave")
        runtime.add_route("/users", "users", "index")
        _install(monkeypatch, runtime)

        with pytest.raises(SystemExit) as exc_info:
            main(["check", "_fake_perch_site"])

        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert "/articles/:id/edit: controller 'articles' has no method 'edit'" in err
        assert "/articles/:id/leave: controller 'articles' has no method 'on_leave'" in err
        assert "/users: cannot load controller 'users'" in err
        assert "3 problem(s) in 4 route(s)." in err

    def test_private_method_is_reported(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        runtime = Runtime()
        runtime.register("articles", Articles)
        runtime.add_route("/", "articles", "_secret")
        _install(monkeypatch, runtime)

        with pytest.raises(SystemExit) as exc_info:
            main(["check", "_fake_perch_site"])

        assert exc_info.value.code == 1
        assert "/: controller 'articles' has no method '_secret'" in capsys.readouterr().err
