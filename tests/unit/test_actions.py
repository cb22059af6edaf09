"""Tests for the server-action entry points."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.billing.quota import QuotaProvider
from src.core.exceptions import PluginGroupNotFoundError, PluginNotFoundError
from src.core.types import Membership, Plan, PlanPrice, Subscription, Tenant
from src.plugins.base import PluginDefinition
from src.plugins.manager import PluginManager
from src.plugins.registry import PluginGroup, PluginRegistry
from src.saas.actions import (
    ActionContext,
    activate_plugin_action,
    deactivate_plugin_action,
    get_quota_action,
    list_plugins_action,
    update_plugin_action,
)
from src.saas.memory import (
    InMemoryPlanRepository,
    InMemorySubscriptionRepository,
    InMemoryTenantRepository,
    InMemoryUsageCounter,
)
from src.saas.settings import default_tenant_settings


def _context() -> ActionContext:
    group = PluginGroup.of(
        "notifications", "Notifications", "Receive your app events as notifications", "bell",
        [PluginDefinition(key="webhook", name="Webhook", description="Generic HTTP webhook", icon="")],
    )
    registry = PluginRegistry([group])
    tenants = InMemoryTenantRepository([
        Tenant(id="t1", name="Acme", slug="acme", settings=default_tenant_settings(registry)),
    ])
    counter = InMemoryUsageCounter()
    counter.add("memberships", Membership(id="m1", user_id="u1", tenant_id="t1"))
    quota = QuotaProvider(
        tenants,
        InMemorySubscriptionRepository([Subscription(id="s1", tenant_id="t1", price_id="p1", status="active")]),
        InMemoryPlanRepository([Plan(
            id="free",
            name="Free",
            metadata={"TEAM_MEMBERS": "2", "INTEGRATIONS": "true"},
            prices=[PlanPrice(id="p1", plan_id="free", price=0, currency="usd", interval="month")],
        )]),
        counter,
    )
    return ActionContext(plugins=PluginManager(registry, tenants, max_retries=1), quota=quota)


class TestPluginActions:
    @pytest.mark.asyncio
    async def test_update(self) -> None:
        ctx = _context()
        state = await update_plugin_action(ctx, "t1", {
            "group_key": "notifications",
            "plugin_key": "webhook",
            "config": {"url": "https://hooks.acme.io"},
        })
        assert state.enabled is True
        assert state.config == {"url": "https://hooks.acme.io"}

    @pytest.mark.asyncio
    async def test_update_rejects_malformed_payload(self) -> None:
        with pytest.raises(ValidationError):
            await update_plugin_action(_context(), "t1", {"plugin_key": "webhook"})

    @pytest.mark.asyncio
    async def test_unknown_group(self) -> None:
        with pytest.raises(PluginGroupNotFoundError):
            await activate_plugin_action(_context(), "t1", {"group_key": "crm", "plugin_key": "webhook"})

    @pytest.mark.asyncio
    async def test_unknown_plugin(self) -> None:
        with pytest.raises(PluginNotFoundError):
            await activate_plugin_action(_context(), "t1", {"group_key": "notifications", "plugin_key": "fax"})

    @pytest.mark.asyncio
    async def test_activate_then_deactivate(self) -> None:
        ctx = _context()
        ref = {"group_key": "notifications", "plugin_key": "webhook"}
        assert (await activate_plugin_action(ctx, "t1", ref)).enabled is True
        assert (await deactivate_plugin_action(ctx, "t1", ref)).enabled is False

    @pytest.mark.asyncio
    async def test_list_plugins(self) -> None:
        ctx = _context()
        assert [g.key for g in await list_plugins_action(ctx)] == ["notifications"]
        assert await list_plugins_action(ctx, {"search_term": "slack"}) == []


class TestQuotaAction:
    @pytest.mark.asyncio
    async def test_all_features(self) -> None:
        features = await get_quota_action(_context(), "t1")
        assert [f.id for f in features] == ["TEAM_MEMBERS"]

    @pytest.mark.asyncio
    async def test_single_feature(self) -> None:
        [seats] = await get_quota_action(_context(), "t1", {"feature_id": "TEAM_MEMBERS"})
        assert seats.quota is not None
        assert seats.quota.usage == 1
        assert seats.quota.usage_rate == 50
