"""Plugin data records and their capability tables.

A plugin is described by two separate pieces:

- ``PluginDefinition`` — static identity, display metadata and the optional
  pydantic model describing tenant-supplied configuration.
- ``PluginHooks`` — the lifecycle callbacks and custom methods, looked up by
  plugin id at runtime.

Keeping them apart lets the registry describe a plugin's shape without
touching any behaviour.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel

from src.core.constants import RESERVED_PLUGIN_METHODS
from src.core.exceptions import PluginRegistryError

InstallHook = Callable[[str], Awaitable[None]]
UpdateHook = Callable[[str, dict[str, Any]], Awaitable[None]]
UninstallHook = Callable[[str], Awaitable[None]]
ValidateHook = Callable[[str, dict[str, Any]], Awaitable[bool]]
WebhookHook = Callable[[str, Any], Awaitable[None]]


@dataclass(frozen=True)
class PluginHelpLink:
    label: str
    url: str


@dataclass(frozen=True)
class PluginHelp:
    title: str = ""
    description: str = ""
    link: PluginHelpLink | None = None


@dataclass(frozen=True)
class PluginOptions:
    """Informational flags. The runtime never branches on them."""

    disabled: bool = False
    hidden: bool = False
    requires_webhook: bool = False
    coming_soon: bool = False
    help: PluginHelp | None = None


@dataclass(frozen=True)
class PluginDefinition:
    key: str
    name: str
    description: str
    icon: str
    help: str = ""
    options: PluginOptions = field(default_factory=PluginOptions)
    config_schema: type[BaseModel] | None = None


@dataclass(frozen=True)
class PluginHooks:
    """Capability table entry for one plugin. Every callback is optional."""

    on_install: InstallHook | None = None
    on_update: UpdateHook | None = None
    on_uninstall: UninstallHook | None = None
    on_validate: ValidateHook | None = None
    on_receive_webhook: WebhookHook | None = None
    methods: Mapping[str, Callable[..., Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        clashes = sorted(RESERVED_PLUGIN_METHODS.intersection(self.methods))
        if clashes:
            msg = f"Plugin methods may not override manager operations: {', '.join(clashes)}"
            raise PluginRegistryError(msg, context={"methods": clashes})
        object.__setattr__(self, "methods", MappingProxyType(dict(self.methods)))


NO_HOOKS = PluginHooks()


def plugin_id(group_key: str, plugin_key: str) -> str:
    """Stable identifier of a (group, plugin) pair."""
    return f"{group_key}.{plugin_key}"
