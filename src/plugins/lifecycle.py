"""Lifecycle dispatcher — runs install/update/uninstall hooks on state transitions.

Per (tenant, plugin) the state is either Disabled (initial) or Enabled:

    Disabled → Enabled   on_install, then on_update
    Enabled  → Enabled   on_update
    Enabled  → Disabled  on_uninstall
    Disabled → Disabled  nothing

Dispatch always runs after the settings write, so a failing hook cannot
change the stored state. Hook failures are logged and swallowed.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from src.core.logging import get_logger
from src.plugins.base import PluginHooks

log = get_logger(__name__)


class Transition(str, Enum):
    INSTALL = "install"
    UPDATE = "update"
    UNINSTALL = "uninstall"
    NONE = "none"


def classify(was_enabled: bool, is_enabled: bool) -> Transition:
    if is_enabled:
        return Transition.UPDATE if was_enabled else Transition.INSTALL
    return Transition.UNINSTALL if was_enabled else Transition.NONE


class LifecycleDispatcher:
    """Invokes plugin hooks for a before/after enabled pair."""

    async def dispatch(
        self,
        tenant_id: str,
        plugin_id: str,
        hooks: PluginHooks,
        was_enabled: bool,
        is_enabled: bool,
        config: dict[str, Any],
    ) -> tuple[str, ...]:
        """Run the hooks for this transition.

        Returns:
            Names of the hooks that were invoked, in call order, including
            ones that raised.
        """
        transition = classify(was_enabled, is_enabled)
        calls: list[tuple[str, Callable[[], Awaitable[Any]]]] = []

        if transition is Transition.INSTALL and hooks.on_install is not None:
            on_install = hooks.on_install
            calls.append(("on_install", lambda: on_install(tenant_id)))
        if transition in (Transition.INSTALL, Transition.UPDATE) and hooks.on_update is not None:
            on_update = hooks.on_update
            calls.append(("on_update", lambda: on_update(tenant_id, dict(config))))
        if transition is Transition.UNINSTALL and hooks.on_uninstall is not None:
            on_uninstall = hooks.on_uninstall
            calls.append(("on_uninstall", lambda: on_uninstall(tenant_id)))

        log.debug(
            "plugin_lifecycle_dispatch",
            tenant_id=tenant_id,
            plugin=plugin_id,
            transition=transition.value,
            hooks=[name for name, _ in calls],
        )

        invoked: list[str] = []
        for name, call in calls:
            invoked.append(name)
            try:
                await call()
            except Exception as exc:
                log.error(
                    "plugin_lifecycle_callback_failed",
                    tenant_id=tenant_id,
                    plugin=plugin_id,
                    hook=name,
                    error=str(exc),
                    exc_info=True,
                )
        return tuple(invoked)
