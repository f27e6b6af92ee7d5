"""Routing — URL patterns matched to (controller, method) handlers.

Routes may be added at any time, including while the runtime is
running; re-registering a pattern replaces the previous handler.
"""
