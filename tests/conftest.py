"""Shared fixtures for perch tests."""

import pytest

from perch.testing import StaticSite


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def site() -> StaticSite:
    return StaticSite()
