"""Test utilities for perch applications.

Provides an in-memory origin for the resource loader::

    from perch.testing import StaticSite

    site = StaticSite({"/home.html": "<section>Home</section>"})
    runtime = Runtime(transport=site.transport)
"""

from perch.testing.site import StaticSite

__all__ = ["StaticSite"]
