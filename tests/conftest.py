"""Shared pytest setup for the orbit suite.

Async tests are marked with ``@pytest.mark.asyncio``. When pytest-asyncio is
not installed they still run through the ``pytest_pyfunc_call`` hook below.
Every test also starts with a fresh settings singleton, so env overrides set
with ``monkeypatch`` reach ``get_settings()`` and never leak between tests.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Iterator
from typing import Any

import pytest

import config.settings


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "asyncio: mark test as asyncio-compatible")


def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Run marked coroutine tests on a private event loop.

    Returns ``None`` for everything else so pytest (or an installed async
    plugin) handles the call.
    """
    if pyfuncitem.get_closest_marker("asyncio") is None:
        return None

    test_func = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_func):
        return None

    kwargs: dict[str, Any] = {
        arg: pyfuncitem.funcargs[arg]
        for arg in pyfuncitem._fixtureinfo.argnames
    }
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        loop.run_until_complete(test_func(**kwargs))
    finally:
        loop.close()
        asyncio.set_event_loop(asyncio.new_event_loop())
    return True


@pytest.fixture(autouse=True)
def fresh_settings() -> Iterator[None]:
    """Drop the cached ``Settings`` before and after each test."""
    config.settings._settings_instance = None
    yield
    config.settings._settings_instance = None
