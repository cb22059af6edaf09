"""Tests for the lifecycle dispatcher state machine."""

from __future__ import annotations

from typing import Any

import pytest
from structlog.testing import capture_logs

from src.plugins.base import PluginHooks
from src.plugins.lifecycle import LifecycleDispatcher, Transition, classify


class _Recorder:
    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.calls: list[str] = []
        self._fail_on = fail_on or set()

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self._fail_on:
            raise RuntimeError(f"{name} exploded")

    async def on_install(self, tenant_id: str) -> None:
        self._record("on_install")

    async def on_update(self, tenant_id: str, config: dict[str, Any]) -> None:
        self._record("on_update")

    async def on_uninstall(self, tenant_id: str) -> None:
        self._record("on_uninstall")

    def hooks(self) -> PluginHooks:
        return PluginHooks(
            on_install=self.on_install,
            on_update=self.on_update,
            on_uninstall=self.on_uninstall,
        )


class TestClassify:
    @pytest.mark.parametrize(
        ("was", "now", "expected"),
        [
            (False, True, Transition.INSTALL),
            (True, True, Transition.UPDATE),
            (True, False, Transition.UNINSTALL),
            (False, False, Transition.NONE),
        ],
    )
    def test_transitions(self, was: bool, now: bool, expected: Transition) -> None:
        assert classify(was, now) is expected


class TestDispatch:
    @pytest.mark.asyncio
    async def test_install_runs_install_then_update(self) -> None:
        rec = _Recorder()
        invoked = await LifecycleDispatcher().dispatch("t1", "g.p", rec.hooks(), False, True, {})
        assert rec.calls == ["on_install", "on_update"]
        assert invoked == ("on_install", "on_update")

    @pytest.mark.asyncio
    async def test_update_only(self) -> None:
        rec = _Recorder()
        await LifecycleDispatcher().dispatch("t1", "g.p", rec.hooks(), True, True, {})
        assert rec.calls == ["on_update"]

    @pytest.mark.asyncio
    async def test_uninstall_only(self) -> None:
        rec = _Recorder()
        await LifecycleDispatcher().dispatch("t1", "g.p", rec.hooks(), True, False, {})
        assert rec.calls == ["on_uninstall"]

    @pytest.mark.asyncio
    async def test_disabled_to_disabled_runs_nothing(self) -> None:
        rec = _Recorder()
        invoked = await LifecycleDispatcher().dispatch("t1", "g.p", rec.hooks(), False, False, {})
        assert rec.calls == []
        assert invoked == ()

    @pytest.mark.asyncio
    async def test_missing_hooks_skipped(self) -> None:
        invoked = await LifecycleDispatcher().dispatch("t1", "g.p", PluginHooks(), False, True, {})
        assert invoked == ()

    @pytest.mark.asyncio
    async def test_update_receives_config_copy(self) -> None:
        seen: list[dict[str, Any]] = []

        async def on_update(tenant_id: str, config: dict[str, Any]) -> None:
            config["mutated"] = True
            seen.append(config)

        config = {"url": "https://x"}
        await LifecycleDispatcher().dispatch(
            "t1", "g.p", PluginHooks(on_update=on_update), True, True, config
        )
        assert seen[0]["url"] == "https://x"
        assert "mutated" not in config

    @pytest.mark.asyncio
    async def test_failure_is_logged_and_later_hooks_still_run(self) -> None:
        rec = _Recorder(fail_on={"on_install"})
        with capture_logs() as logs:
            invoked = await LifecycleDispatcher().dispatch(
                "t1", "g.p", rec.hooks(), False, True, {}
            )
        assert rec.calls == ["on_install", "on_update"]
        assert invoked == ("on_install", "on_update")
        failures = [e for e in logs if e["event"] == "plugin_lifecycle_callback_failed"]
        assert len(failures) == 1
        assert failures[0]["hook"] == "on_install"
        assert failures[0]["plugin"] == "g.p"
