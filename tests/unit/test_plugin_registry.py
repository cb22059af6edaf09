"""Tests for plugin definitions, hooks and the group registry."""

from __future__ import annotations

import pytest
from pydantic import BaseModel, Field

from src.core.exceptions import (
    PluginGroupNotFoundError,
    PluginNotFoundError,
    PluginRegistryError,
)
from src.core.types import FieldType
from src.plugins.base import NO_HOOKS, PluginDefinition, PluginHooks, plugin_id
from src.plugins.registry import PluginGroup, PluginRegistry


class _ChatConfig(BaseModel):
    token: str = Field(title="API Token", description="Secret token")
    port: int | None = None
    verbose: bool = False


def _definition(key: str, schema: type[BaseModel] | None = None, **kwargs: str) -> PluginDefinition:
    return PluginDefinition(
        key=key,
        name=kwargs.get("name", key.title()),
        description=kwargs.get("description", f"{key} plugin"),
        icon=f"/icons/{key}.svg",
        config_schema=schema,
    )


def _registry(hooks: dict[tuple[str, str], PluginHooks] | None = None) -> PluginRegistry:
    chat = PluginGroup.of(
        key="chat",
        name="Chat",
        description="Team chat integrations",
        icon="chat",
        plugins=[_definition("slack", _ChatConfig), _definition("plain")],
    )
    crm = PluginGroup.of(
        key="crm",
        name="CRM",
        description="Customer records",
        icon="users",
        plugins=[_definition("hubspot", name="HubSpot", description="Sync contacts")],
    )
    return PluginRegistry([chat, crm], hooks=hooks)


class TestPluginHooks:
    def test_reserved_method_names_rejected(self) -> None:
        async def _noop() -> None:
            return None

        with pytest.raises(PluginRegistryError, match="update"):
            PluginHooks(methods={"update": _noop})

    def test_methods_are_read_only(self) -> None:
        async def _ping() -> str:
            return "pong"

        hooks = PluginHooks(methods={"ping": _ping})
        with pytest.raises(TypeError):
            hooks.methods["other"] = _ping  # type: ignore[index]

    def test_plugin_id(self) -> None:
        assert plugin_id("notifications", "discord") == "notifications.discord"


class TestPluginGroup:
    def test_duplicate_plugin_keys_rejected(self) -> None:
        with pytest.raises(PluginRegistryError, match="Duplicate plugin key 'a'"):
            PluginGroup.of("g", "G", "", "", [_definition("a"), _definition("a")])

    def test_plugins_mapping_is_read_only(self) -> None:
        group = PluginGroup.of("g", "G", "", "", [_definition("a")])
        with pytest.raises(TypeError):
            group.plugins["b"] = _definition("b")  # type: ignore[index]


class TestRegistryConstruction:
    def test_duplicate_group_keys_rejected(self) -> None:
        group = PluginGroup.of("g", "G", "", "", [_definition("a")])
        with pytest.raises(PluginRegistryError, match="Duplicate plugin group key"):
            PluginRegistry([group, group])

    def test_mismatched_mapping_key_rejected(self) -> None:
        group = PluginGroup(key="g", name="G", description="", icon="", plugins={"x": _definition("y")})
        with pytest.raises(PluginRegistryError, match="declares key 'y'"):
            PluginRegistry([group])

    def test_hooks_for_unknown_pair_rejected(self) -> None:
        with pytest.raises(PluginRegistryError, match="unknown plugin chat.teams"):
            _registry(hooks={("chat", "teams"): PluginHooks()})


class TestRegistryLookup:
    def test_definition(self) -> None:
        registry = _registry()
        assert registry.definition("chat", "slack").config_schema is _ChatConfig

    def test_unknown_group(self) -> None:
        with pytest.raises(PluginGroupNotFoundError):
            _registry().group("billing")

    def test_unknown_plugin(self) -> None:
        with pytest.raises(PluginNotFoundError, match="'teams' not found in group 'chat'"):
            _registry().definition("chat", "teams")

    def test_hooks_default_to_empty_table(self) -> None:
        assert _registry().hooks_for("crm", "hubspot") is NO_HOOKS

    def test_registered_hooks_returned(self) -> None:
        hooks = PluginHooks()
        registry = _registry(hooks={("chat", "slack"): hooks})
        assert registry.hooks_for("chat", "slack") is hooks

    def test_pairs_cover_every_plugin(self) -> None:
        assert sorted(_registry().pairs()) == [
            ("chat", "plain"),
            ("chat", "slack"),
            ("crm", "hubspot"),
        ]

    def test_contains(self) -> None:
        registry = _registry()
        assert "chat" in registry
        assert "billing" not in registry


class TestRegistryListing:
    def test_list_all_groups(self) -> None:
        summaries = _registry().list()
        assert [g.key for g in summaries] == ["chat", "crm"]

    def test_list_single_group(self) -> None:
        summary = _registry().list("crm")
        assert summary.key == "crm"
        assert [p.key for p in summary.plugins] == ["hubspot"]

    def test_list_unknown_group(self) -> None:
        with pytest.raises(PluginGroupNotFoundError):
            _registry().list("billing")

    def test_fields_match_schema_properties(self) -> None:
        summary = _registry().list("chat")
        by_key = {p.key: p for p in summary.plugins}
        assert len(by_key["slack"].fields) == len(_ChatConfig.model_fields)
        assert by_key["plain"].fields == ()

    def test_field_types_inferred(self) -> None:
        slack = _registry().list("chat").plugins[0]
        types = {f.key: f.type for f in slack.fields}
        assert types == {
            "token": FieldType.TEXT,
            "port": FieldType.NUMBER,
            "verbose": FieldType.BOOLEAN,
        }

    def test_summary_strips_schema(self) -> None:
        slack = _registry().list("chat").plugins[0]
        assert not hasattr(slack, "config_schema")


class TestRegistrySearch:
    def test_no_filters_returns_everything(self) -> None:
        assert len(_registry().search()) == 2

    def test_group_filter(self) -> None:
        assert [g.key for g in _registry().search(group="crm")] == ["crm"]

    def test_term_matches_plugin_description(self) -> None:
        assert [g.key for g in _registry().search(search_term="CONTACTS")] == ["crm"]

    def test_term_matches_group_name(self) -> None:
        assert [g.key for g in _registry().search(search_term="chat")] == ["chat"]

    def test_term_without_match(self) -> None:
        assert _registry().search(search_term="zzz") == []


class TestDefaultPluginSettings:
    def test_every_pair_disabled(self) -> None:
        assert _registry().default_plugin_settings() == {
            "chat": {
                "slack": {"enabled": False, "config": {}},
                "plain": {"enabled": False, "config": {}},
            },
            "crm": {"hubspot": {"enabled": False, "config": {}}},
        }
