"""Tests for perch.routing.router — trie-based pattern matching."""

import pytest

from perch.errors import ConfigurationError
from perch.routing.route import Route
from perch.routing.router import WILDCARD_PARAM, Router, parse_path


def _handler() -> str:
    return "ok"


def _route(pattern: str) -> Route:
    return Route(pattern=pattern, handler=_handler)


class TestParsePath:
    def test_static(self) -> None:
        segments = parse_path("/articles")
        assert len(segments) == 1
        assert segments[0].value == "articles"
        assert segments[0].is_param is False

    def test_multi_static(self) -> None:
        segments = parse_path("/api/v2/articles")
        assert [s.value for s in segments] == ["api", "v2", "articles"]

    def test_colon_param(self) -> None:
        segments = parse_path("/articles/:id")
        assert segments[1].is_param is True
        assert segments[1].param_name == "id"
        assert segments[1].param_type == "str"

    def test_brace_param(self) -> None:
        segments = parse_path("/articles/{id}")
        assert segments[1].param_name == "id"
        assert segments[1].param_type == "str"

    def test_typed_param(self) -> None:
        segments = parse_path("/articles/{id:int}")
        assert segments[1].param_type == "int"

    def test_wildcard(self) -> None:
        segments = parse_path("/files/*")
        assert segments[1].param_type == "path"
        assert segments[1].param_name == WILDCARD_PARAM

    def test_root(self) -> None:
        assert parse_path("/") == []

    def test_rejects_angle_param(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            parse_path("/share/<slug>")
        assert "<param>" in str(exc_info.value)
        assert "/share/<slug>" in str(exc_info.value)

    def test_rejects_unknown_converter(self) -> None:
        with pytest.raises(ConfigurationError, match="uuid"):
            parse_path("/items/{id:uuid}")

    def test_catch_all_must_be_last(self) -> None:
        with pytest.raises(ConfigurationError, match="must be last"):
            parse_path("/files/*/edit")


class TestRouterStatic:
    def test_root(self) -> None:
        router = Router()
        router.add(_route("/"))
        match = router.match("/")
        assert match is not None
        assert match.route.pattern == "/"
        assert match.path_params == {}

    def test_nested(self) -> None:
        router = Router()
        router.add(_route("/api/v2/articles"))
        assert router.match("/api/v2/articles") is not None

    def test_trailing_slash_ignored(self) -> None:
        router = Router()
        router.add(_route("/about"))
        assert router.match("/about/") is not None

    def test_no_match(self) -> None:
        router = Router()
        router.add(_route("/about"))
        assert router.match("/contact") is None
        assert router.match("/about/team") is None


class TestRouterParams:
    def test_colon_param(self) -> None:
        router = Router()
        router.add(_route("/articles/:id"))
        match = router.match("/articles/42")
        assert match is not None
        assert match.path_params == {"id": "42"}

    def test_multiple_params(self) -> None:
        router = Router()
        router.add(_route("/users/:user/posts/{post}"))
        match = router.match("/users/ada/posts/7")
        assert match is not None
        assert match.path_params == {"user": "ada", "post": "7"}

    def test_int_converter_constrains(self) -> None:
        router = Router()
        router.add(_route("/articles/{id:int}"))
        assert router.match("/articles/42") is not None
        assert router.match("/articles/latest") is None

    def test_values_stay_strings(self) -> None:
        router = Router()
        router.add(_route("/prices/{amount:float}"))
        match = router.match("/prices/9.99")
        assert match is not None
        assert match.path_params == {"amount": "9.99"}

    def test_param_requires_segment(self) -> None:
        router = Router()
        router.add(_route("/articles/:id"))
        assert router.match("/articles") is None


class TestRouterCatchAll:
    def test_wildcard(self) -> None:
        router = Router()
        router.add(_route("/files/*"))
        match = router.match("/files/docs/readme.md")
        assert match is not None
        assert match.path_params == {WILDCARD_PARAM: "docs/readme.md"}

    def test_named_path(self) -> None:
        router = Router()
        router.add(_route("/static/{rest:path}"))
        match = router.match("/static/css/app.css")
        assert match is not None
        assert match.path_params == {"rest": "css/app.css"}


class TestRouterPriority:
    def test_static_beats_param(self) -> None:
        router = Router()
        router.add(_route("/articles/:id"))
        router.add(_route("/articles/new"))
        match = router.match("/articles/new")
        assert match is not None
        assert match.route.pattern == "/articles/new"

    def test_param_beats_catch_all(self) -> None:
        router = Router()
        router.add(_route("/docs/*"))
        router.add(_route("/docs/:page"))
        match = router.match("/docs/intro")
        assert match is not None
        assert match.route.pattern == "/docs/:page"

    def test_falls_back_from_static_branch(self) -> None:
        router = Router()
        router.add(_route("/articles/new/preview"))
        router.add(_route("/articles/:id/edit"))
        match = router.match("/articles/new/edit")
        assert match is not None
        assert match.path_params == {"id": "new"}


class TestRouterRegistration:
    def test_same_pattern_replaces(self) -> None:
        router = Router()

        def first() -> str:
            return "first"

        def second() -> str:
            return "second"

        router.add(Route(pattern="/page", handler=first))
        router.add(Route(pattern="/page", handler=second))

        match = router.match("/page")
        assert match is not None
        assert match.route.handler is second
        assert len(router.routes) == 1

    def test_routes_in_registration_order(self) -> None:
        router = Router()
        for pattern in ("/b", "/a", "/c/:id"):
            router.add(_route(pattern))
        assert [r.pattern for r in router.routes] == ["/b", "/a", "/c/:id"]
