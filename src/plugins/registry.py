"""Plugin group registry — the fixed catalogue of integrations, built at startup."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, overload

from src.core.exceptions import (
    PluginGroupNotFoundError,
    PluginNotFoundError,
    PluginRegistryError,
)
from src.core.logging import get_logger
from src.plugins.base import NO_HOOKS, PluginDefinition, PluginHooks, PluginOptions
from src.plugins.schema import PluginField, describe_fields

log = get_logger(__name__)


@dataclass(frozen=True)
class PluginGroup:
    key: str
    name: str
    description: str
    icon: str
    plugins: Mapping[str, PluginDefinition] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "plugins", MappingProxyType(dict(self.plugins)))

    @classmethod
    def of(
        cls,
        key: str,
        name: str,
        description: str,
        icon: str,
        plugins: Iterable[PluginDefinition],
    ) -> PluginGroup:
        """Build a group from a sequence of definitions, rejecting duplicate keys."""
        by_key: dict[str, PluginDefinition] = {}
        for definition in plugins:
            if definition.key in by_key:
                msg = f"Duplicate plugin key '{definition.key}' in group '{key}'"
                raise PluginRegistryError(msg, context={"group": key, "plugin": definition.key})
            by_key[definition.key] = definition
        return cls(key=key, name=name, description=description, icon=icon, plugins=by_key)


# ── Public (normalized) views ────────────────────────────────────


@dataclass(frozen=True)
class PluginSummary:
    """Plugin view for generic clients: no callbacks, no raw schema."""

    key: str
    name: str
    description: str
    icon: str
    help: str
    options: PluginOptions
    fields: tuple[PluginField, ...]


@dataclass(frozen=True)
class GroupSummary:
    key: str
    name: str
    description: str
    icon: str
    plugins: tuple[PluginSummary, ...]


def summarize_plugin(definition: PluginDefinition) -> PluginSummary:
    return PluginSummary(
        key=definition.key,
        name=definition.name,
        description=definition.description,
        icon=definition.icon,
        help=definition.help,
        options=definition.options,
        fields=tuple(describe_fields(definition.config_schema)),
    )


def summarize_group(group: PluginGroup) -> GroupSummary:
    return GroupSummary(
        key=group.key,
        name=group.name,
        description=group.description,
        icon=group.icon,
        plugins=tuple(summarize_plugin(p) for p in group.plugins.values()),
    )


# ── Registry ─────────────────────────────────────────────────────


class PluginRegistry:
    """Immutable mapping of group key → group, plus the hooks table.

    Safe to share across tenants and requests.
    """

    def __init__(
        self,
        groups: Iterable[PluginGroup],
        hooks: Mapping[tuple[str, str], PluginHooks] | None = None,
    ) -> None:
        by_key: dict[str, PluginGroup] = {}
        for group in groups:
            if group.key in by_key:
                msg = f"Duplicate plugin group key '{group.key}'"
                raise PluginRegistryError(msg, context={"group": group.key})
            for plugin_key, definition in group.plugins.items():
                if plugin_key != definition.key:
                    msg = (
                        f"Plugin registered as '{plugin_key}' declares key "
                        f"'{definition.key}' in group '{group.key}'"
                    )
                    raise PluginRegistryError(msg, context={"group": group.key})
            by_key[group.key] = group

        hooks = dict(hooks or {})
        for group_key, plugin_key in hooks:
            known = by_key.get(group_key)
            if known is None or plugin_key not in known.plugins:
                msg = f"Hooks registered for unknown plugin {group_key}.{plugin_key}"
                raise PluginRegistryError(msg, context={"group": group_key, "plugin": plugin_key})

        self._groups: Mapping[str, PluginGroup] = MappingProxyType(by_key)
        self._hooks: Mapping[tuple[str, str], PluginHooks] = MappingProxyType(hooks)
        log.info(
            "plugin_registry_built",
            groups=len(by_key),
            plugins=sum(len(g.plugins) for g in by_key.values()),
        )

    # ── Lookup ──

    def group(self, group_key: str) -> PluginGroup:
        try:
            return self._groups[group_key]
        except KeyError:
            raise PluginGroupNotFoundError(
                f"Plugin group '{group_key}' not found",
                context={"group": group_key},
            ) from None

    def definition(self, group_key: str, plugin_key: str) -> PluginDefinition:
        group = self.group(group_key)
        try:
            return group.plugins[plugin_key]
        except KeyError:
            raise PluginNotFoundError(
                f"Plugin '{plugin_key}' not found in group '{group_key}'",
                context={"group": group_key, "plugin": plugin_key},
            ) from None

    def hooks_for(self, group_key: str, plugin_key: str) -> PluginHooks:
        self.definition(group_key, plugin_key)
        return self._hooks.get((group_key, plugin_key), NO_HOOKS)

    def group_keys(self) -> list[str]:
        return list(self._groups)

    def pairs(self) -> Iterator[tuple[str, str]]:
        for group in self._groups.values():
            for plugin_key in group.plugins:
                yield group.key, plugin_key

    def __contains__(self, group_key: object) -> bool:
        return group_key in self._groups

    # ── Listing ──

    @overload
    def list(self, group_key: None = None) -> list[GroupSummary]: ...

    @overload
    def list(self, group_key: str) -> GroupSummary: ...

    def list(self, group_key: str | None = None) -> GroupSummary | list[GroupSummary]:
        """List every group, or a single group when ``group_key`` is given."""
        if group_key is not None:
            return summarize_group(self.group(group_key))
        return [summarize_group(g) for g in self._groups.values()]

    def search(
        self,
        group: str | None = None,
        search_term: str | None = None,
    ) -> list[GroupSummary]:
        """Filter groups by exact key, then by a case-insensitive term.

        A group matches the term when its own name/description or any of its
        plugins' name/description contains it. Matching groups are returned
        whole.
        """
        groups = list(self._groups.values())
        if group:
            groups = [g for g in groups if g.key == group]

        if search_term:
            needle = search_term.lower()
            groups = [g for g in groups if _group_matches(g, needle)]

        return [summarize_group(g) for g in groups]

    # ── Defaults ──

    def default_plugin_settings(self) -> dict[str, dict[str, dict[str, Any]]]:
        """``{group: {plugin: {"enabled": False, "config": {}}}}`` for every pair."""
        return {
            group.key: {key: {"enabled": False, "config": {}} for key in group.plugins}
            for group in self._groups.values()
        }


def _group_matches(group: PluginGroup, needle: str) -> bool:
    if needle in group.name.lower() or needle in group.description.lower():
        return True
    return any(
        needle in p.name.lower() or needle in p.description.lower()
        for p in group.plugins.values()
    )
