"""Perch — the runtime core of a single-page client application framework.

Resolves URL navigations to controllers, drives them through their
lifecycle, and loads and caches the views, models, scripts, styles, and
data they depend on.

Basic usage::

    from perch import Controller, Runtime

    runtime = Runtime()

    @runtime.register("articles")
    class ArticleController(Controller):
        def required(self, ctx):
            return [ctx.view("article.html")]

        async def show(self, ctx):
            element = await ctx.view("article.html")
            element.hidden = False

    runtime.add_route("/articles/:id", "articles", "show")
    await runtime.run()
    await runtime.navigate("/articles/42")
"""

__version__ = "0.1.0"
__all__ = [
    "ApiAdapter",
    "ConfigurationError",
    "Controller",
    "DataOptions",
    "ExecutionContext",
    "LifecycleHookError",
    "MethodNotFound",
    "ModuleLoadError",
    "ModuleRegistry",
    "NavigationOutcome",
    "NetworkError",
    "ParseError",
    "PerchError",
    "ResourceLoader",
    "RouteDefinition",
    "RouteNotFound",
    "Runtime",
    "RuntimeConfig",
]

# Public name -> defining module
_LAZY_IMPORTS: dict[str, str] = {
    "ApiAdapter": "perch.api",
    "ConfigurationError": "perch.errors",
    "Controller": "perch.controller",
    "DataOptions": "perch.api",
    "ExecutionContext": "perch.context",
    "LifecycleHookError": "perch.errors",
    "MethodNotFound": "perch.errors",
    "ModuleLoadError": "perch.errors",
    "ModuleRegistry": "perch.modules",
    "NavigationOutcome": "perch.runtime",
    "NetworkError": "perch.errors",
    "ParseError": "perch.errors",
    "PerchError": "perch.errors",
    "ResourceLoader": "perch.loader",
    "RouteDefinition": "perch.routing.route",
    "RouteNotFound": "perch.errors",
    "Runtime": "perch.runtime",
    "RuntimeConfig": "perch.config",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    module_path = _LAZY_IMPORTS.get(name)
    if module_path is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_path), name)
