"""Uniform calling of user callables that may or may not be coroutines.

Lifecycle hooks, route methods, model factories, not-found hooks, and
``on_inserted`` callbacks are all user code, written either way.
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *handler*; if it returned an awaitable, await it.

    ::

        class Home(Controller):
            def on_enter(self, ctx):          # plain result
                self.visits += 1

            async def show(self, ctx):        # awaited
                await ctx.view("home.html")

        await invoke(home.on_enter, ctx)
        await invoke(home.show, ctx)
    """
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
