"""Server-action entry points for the settings UI.

Each action validates its raw input with a pydantic model, resolves the plugin
handle (unknown keys fail before any tenant lookup) and delegates to the
plugin manager or quota provider. The tenant id comes from the caller's
authenticated session, never from the payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from src.billing.quota import QuotaProvider
from src.core.logging import get_logger
from src.core.types import FeatureQuota, TenantPluginState
from src.plugins.manager import PluginManager
from src.plugins.registry import GroupSummary

log = get_logger(__name__)


# ── Inputs ───────────────────────────────────────────────────────

class PluginRef(BaseModel):
    group_key: str = Field(..., min_length=1)
    plugin_key: str = Field(..., min_length=1)


class UpdatePluginInput(PluginRef):
    config: dict[str, Any] = Field(default_factory=dict)
    enabled: bool | None = None


class ListPluginsInput(BaseModel):
    group: str | None = None
    search_term: str | None = Field(default=None, max_length=100)


class GetQuotaInput(BaseModel):
    feature_id: str | None = None


# ── Context ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class ActionContext:
    """Collaborators shared by every action, wired once at startup."""

    plugins: PluginManager
    quota: QuotaProvider


# ── Actions ──────────────────────────────────────────────────────

async def update_plugin_action(
    ctx: ActionContext,
    tenant_id: str,
    payload: dict[str, Any],
) -> TenantPluginState:
    data = UpdatePluginInput.model_validate(payload)
    handle = ctx.plugins.plugin(data.group_key, data.plugin_key)
    log.info("action_plugin_update", tenant_id=tenant_id, plugin=handle.id)
    return await handle.update(tenant_id, config=data.config, enabled=data.enabled)


async def activate_plugin_action(
    ctx: ActionContext,
    tenant_id: str,
    payload: dict[str, Any],
) -> TenantPluginState:
    data = PluginRef.model_validate(payload)
    handle = ctx.plugins.plugin(data.group_key, data.plugin_key)
    log.info("action_plugin_activate", tenant_id=tenant_id, plugin=handle.id)
    return await handle.activate(tenant_id)


async def deactivate_plugin_action(
    ctx: ActionContext,
    tenant_id: str,
    payload: dict[str, Any],
) -> TenantPluginState:
    data = PluginRef.model_validate(payload)
    handle = ctx.plugins.plugin(data.group_key, data.plugin_key)
    log.info("action_plugin_deactivate", tenant_id=tenant_id, plugin=handle.id)
    return await handle.deactivate(tenant_id)


async def list_plugins_action(
    ctx: ActionContext,
    payload: dict[str, Any] | None = None,
) -> list[GroupSummary]:
    data = ListPluginsInput.model_validate(payload or {})
    return ctx.plugins.plugins.list(group=data.group, search_term=data.search_term)


async def get_quota_action(
    ctx: ActionContext,
    tenant_id: str,
    payload: dict[str, Any] | None = None,
) -> list[FeatureQuota]:
    """All countable features, or just one when ``feature_id`` is given."""
    data = GetQuotaInput.model_validate(payload or {})
    if data.feature_id is not None:
        return [await ctx.quota.get_feature_quota(tenant_id, data.feature_id)]
    return await ctx.quota.get_tenant_features(tenant_id)
