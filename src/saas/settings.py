"""Tenant settings document — defaults, deep merge, and plugin state access.

Shape (subset)::

    {
        "billing": {"email": str | None},
        "emails": {"usage_exceeded_sent_at": str | None},
        "integrations": {"private_token": str, "public_token": str},
        "plugins": {group: {plugin: {"enabled": bool, "config": {...}}}},
    }
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from uuid_extensions import uuid7

from src.core.constants import PLUGIN_CONFIG_KEY, SETTINGS_PLUGINS_KEY
from src.core.types import TenantPluginState

if TYPE_CHECKING:
    from src.plugins.registry import PluginRegistry


def default_tenant_settings(
    registry: PluginRegistry,
    billing_email: str | None = None,
) -> dict[str, Any]:
    return {
        "billing": {"email": billing_email},
        "emails": {"usage_exceeded_sent_at": None},
        "integrations": {
            "private_token": str(uuid7()),
            "public_token": str(uuid7()),
        },
        SETTINGS_PLUGINS_KEY: registry.default_plugin_settings(),
    }


# Depth of ``plugins.<group>.<plugin>.config`` below the document root
_PLUGIN_CONFIG_DEPTH = 3


def _is_plugin_config(path: tuple[str, ...], key: str) -> bool:
    return (
        len(path) == _PLUGIN_CONFIG_DEPTH
        and path[0] == SETTINGS_PLUGINS_KEY
        and key == PLUGIN_CONFIG_KEY
    )


def merge_settings(
    current: Mapping[str, Any] | None,
    patch: Mapping[str, Any],
    _path: tuple[str, ...] = (),
) -> dict[str, Any]:
    """Deep-merge ``patch`` into a copy of ``current``.

    Nested mappings merge key by key so sibling entries survive. A plugin
    entry's ``config`` (``plugins.<group>.<plugin>.config``) is taken from the
    patch as-is; a ``config`` key anywhere else merges like any other mapping.
    Neither input is mutated.
    """
    merged: dict[str, Any] = copy.deepcopy(dict(current or {}))
    for key, value in patch.items():
        existing = merged.get(key)
        if (
            not _is_plugin_config(_path, key)
            and isinstance(value, Mapping)
            and isinstance(existing, Mapping)
        ):
            merged[key] = merge_settings(existing, value, (*_path, key))
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def plugin_state(settings: Mapping[str, Any] | None, group_key: str, plugin_key: str) -> TenantPluginState:
    """Read one plugin's stored state, defaulting missing pieces."""
    plugins = (settings or {}).get(SETTINGS_PLUGINS_KEY) or {}
    group = plugins.get(group_key) or {}
    entry = group.get(plugin_key) or {}
    return TenantPluginState(
        enabled=bool(entry.get("enabled", False)),
        config=dict(entry.get("config") or {}),
    )


def plugin_patch(group_key: str, plugin_key: str, entry: Mapping[str, Any]) -> dict[str, Any]:
    """Partial settings document touching a single plugin entry."""
    return {SETTINGS_PLUGINS_KEY: {group_key: {plugin_key: dict(entry)}}}


def missing_plugin_defaults(
    settings: Mapping[str, Any] | None,
    registry: PluginRegistry,
) -> dict[str, Any]:
    """Patch adding default entries for registry pairs absent from ``settings``.

    Returns an empty dict when nothing is missing. Unknown stored entries are
    left alone.
    """
    plugins = (settings or {}).get(SETTINGS_PLUGINS_KEY) or {}
    patch: dict[str, dict[str, Any]] = {}
    for group_key, plugin_key in registry.pairs():
        if plugin_key not in (plugins.get(group_key) or {}):
            patch.setdefault(group_key, {})[plugin_key] = {"enabled": False, "config": {}}
    return {SETTINGS_PLUGINS_KEY: patch} if patch else {}
