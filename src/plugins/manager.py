"""Plugin manager — per-tenant install/update/uninstall of registered plugins.

Usage::

    manager = PluginManager(registry, tenant_repo)
    manager.groups.list()
    manager.plugins.list(search_term="discord")
    discord = manager.plugins["notifications"]["discord"]
    await discord.update(tenant_id, config={"webhook_url": url})
    await discord.deactivate(tenant_id)

Every state-changing operation reads the tenant, writes only its own plugin
entry (guarded by the tenant's settings revision), and then runs the
lifecycle dispatcher.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from typing import Any

from config.settings import get_settings
from src.core.exceptions import (
    PluginGroupNotFoundError,
    PluginNotFoundError,
    PluginRejectedConfigError,
    SettingsConflictError,
    TenantNotFoundError,
    UnsupportedPluginOperationError,
)
from src.core.interfaces import TenantRepositoryBase
from src.core.logging import get_logger
from src.core.types import Tenant, TenantPluginState
from src.plugins.base import PluginDefinition, PluginHooks, plugin_id
from src.plugins.lifecycle import LifecycleDispatcher
from src.plugins.registry import GroupSummary, PluginRegistry
from src.plugins.schema import is_config_complete, validate_config
from src.saas.settings import plugin_patch, plugin_state

log = get_logger(__name__)

StateResolver = Callable[[TenantPluginState], TenantPluginState]


class PluginHandle:
    """Operation set bound to one (group, plugin) pair.

    Besides the four manager-owned operations, any custom method from the
    plugin's hooks table is reachable as an attribute.
    """

    def __init__(
        self,
        manager: PluginManager,
        group_key: str,
        definition: PluginDefinition,
        hooks: PluginHooks,
    ) -> None:
        self._manager = manager
        self._group_key = group_key
        self._definition = definition
        self._hooks = hooks
        self._id = plugin_id(group_key, definition.key)

    @property
    def id(self) -> str:
        return self._id

    @property
    def key(self) -> str:
        return self._definition.key

    @property
    def group_key(self) -> str:
        return self._group_key

    @property
    def definition(self) -> PluginDefinition:
        return self._definition

    def __getattr__(self, name: str) -> Any:
        methods = self.__dict__.get("_hooks")
        if methods is not None and name in methods.methods:
            return methods.methods[name]
        raise AttributeError(f"Plugin {self.__dict__.get('_id', '?')} has no method '{name}'")

    def __repr__(self) -> str:
        return f"PluginHandle({self._id!r})"

    # ── Queries ──

    async def is_installed(self, tenant_id: str) -> bool:
        tenant = await self._manager._load_tenant(tenant_id)
        return plugin_state(tenant.settings, self._group_key, self.key).enabled

    async def state(self, tenant_id: str) -> TenantPluginState:
        tenant = await self._manager._load_tenant(tenant_id)
        return plugin_state(tenant.settings, self._group_key, self.key)

    # ── Mutations ──

    async def update(
        self,
        tenant_id: str,
        config: Mapping[str, Any] | None = None,
        enabled: bool | None = None,
    ) -> TenantPluginState:
        """Validate and store new configuration, then run lifecycle hooks.

        ``enabled`` wins when given. Otherwise the plugin becomes enabled when
        every config value is filled in, and keeps its previous flag when not.

        Raises:
            TenantNotFoundError: no such tenant.
            InvalidPluginConfigError: config violates the plugin schema.
            PluginRejectedConfigError: the plugin's ``on_validate`` said no.
        """
        log.info("plugin_update_requested", tenant_id=tenant_id, plugin=self._id)
        tenant = await self._manager._load_tenant(tenant_id)

        validated = validate_config(self.key, self._definition.config_schema, config)
        if self._hooks.on_validate is not None:
            accepted = await self._hooks.on_validate(tenant_id, dict(validated))
            if not accepted:
                log.warning("plugin_config_rejected", tenant_id=tenant_id, plugin=self._id)
                raise PluginRejectedConfigError(
                    f"Validation failed for plugin {self.key}",
                    plugin=self.key,
                    context={"tenant_id": tenant_id},
                )

        def resolve(previous: TenantPluginState) -> TenantPluginState:
            if enabled is not None:
                new_enabled = enabled
            elif is_config_complete(validated):
                new_enabled = True
            else:
                new_enabled = previous.enabled
            return TenantPluginState(enabled=new_enabled, config=dict(validated))

        return await self._commit(tenant, resolve, operation="update")

    async def activate(self, tenant_id: str) -> TenantPluginState:
        """Enable the plugin keeping its stored config (no revalidation)."""
        tenant = await self._manager._load_tenant(tenant_id)
        return await self._commit(
            tenant,
            lambda previous: TenantPluginState(enabled=True, config=previous.config),
            operation="activate",
        )

    async def deactivate(self, tenant_id: str) -> TenantPluginState:
        """Disable the plugin. The stored config is preserved."""
        tenant = await self._manager._load_tenant(tenant_id)
        return await self._commit(
            tenant,
            lambda previous: TenantPluginState(enabled=False, config=previous.config),
            operation="deactivate",
        )

    async def receive_webhook(self, tenant_id: str, payload: Any) -> None:
        if self._hooks.on_receive_webhook is None:
            raise UnsupportedPluginOperationError(
                f"Plugin {self.key} does not accept webhooks",
                context={"plugin": self._id},
            )
        await self._manager._load_tenant(tenant_id)
        log.info("plugin_webhook_received", tenant_id=tenant_id, plugin=self._id)
        await self._hooks.on_receive_webhook(tenant_id, payload)

    # ── Internals ──

    async def _commit(
        self,
        tenant: Tenant,
        resolve: StateResolver,
        operation: str,
    ) -> TenantPluginState:
        """Write the resolved entry, retrying on revision conflicts, then dispatch."""
        tenants = self._manager.tenants
        attempts = self._manager.max_retries

        for attempt in range(1, attempts + 1):
            previous = plugin_state(tenant.settings, self._group_key, self.key)
            current = resolve(previous)
            try:
                await tenants.update(
                    tenant.id,
                    settings=plugin_patch(self._group_key, self.key, current.to_dict()),
                    expected_revision=tenant.settings_revision,
                )
                break
            except SettingsConflictError:
                if attempt == attempts:
                    log.error(
                        "plugin_settings_conflict",
                        tenant_id=tenant.id,
                        plugin=self._id,
                        operation=operation,
                        attempts=attempts,
                    )
                    raise
                log.warning(
                    "plugin_settings_conflict_retry",
                    tenant_id=tenant.id,
                    plugin=self._id,
                    operation=operation,
                    attempt=attempt,
                )
                tenant = await self._manager._load_tenant(tenant.id)
            except Exception as exc:
                log.error(
                    "plugin_settings_write_failed",
                    tenant_id=tenant.id,
                    plugin=self._id,
                    operation=operation,
                    error=str(exc),
                )
                raise

        invoked = await self._manager.dispatcher.dispatch(
            tenant.id,
            self._id,
            self._hooks,
            was_enabled=previous.enabled,
            is_enabled=current.enabled,
            config=current.config,
        )
        log.info(
            "plugin_state_changed",
            tenant_id=tenant.id,
            plugin=self._id,
            operation=operation,
            was_enabled=previous.enabled,
            enabled=current.enabled,
            hooks=list(invoked),
        )
        return current


class GroupPlugins:
    """Handles of one group, indexed by plugin key."""

    def __init__(self, group_key: str, handles: dict[str, PluginHandle]) -> None:
        self._group_key = group_key
        self._handles = handles

    def __getitem__(self, plugin_key: str) -> PluginHandle:
        try:
            return self._handles[plugin_key]
        except KeyError:
            raise PluginNotFoundError(
                f"Plugin '{plugin_key}' not found in group '{self._group_key}'",
                context={"group": self._group_key, "plugin": plugin_key},
            ) from None

    def __contains__(self, plugin_key: object) -> bool:
        return plugin_key in self._handles

    def __iter__(self) -> Iterator[str]:
        return iter(self._handles)

    def __len__(self) -> int:
        return len(self._handles)


class PluginDirectory:
    """``manager.plugins`` — listing plus ``[group][plugin]`` access."""

    def __init__(self, registry: PluginRegistry, groups: dict[str, GroupPlugins]) -> None:
        self._registry = registry
        self._groups = groups

    def list(
        self,
        group: str | None = None,
        search_term: str | None = None,
    ) -> list[GroupSummary]:
        return self._registry.search(group=group, search_term=search_term)

    def __getitem__(self, group_key: str) -> GroupPlugins:
        try:
            return self._groups[group_key]
        except KeyError:
            raise PluginGroupNotFoundError(
                f"Plugin group '{group_key}' not found",
                context={"group": group_key},
            ) from None

    def __contains__(self, group_key: object) -> bool:
        return group_key in self._groups

    def __iter__(self) -> Iterator[str]:
        return iter(self._groups)


class PluginManager:
    """Runtime facade over the registry and the tenant settings store."""

    def __init__(
        self,
        registry: PluginRegistry,
        tenants: TenantRepositoryBase,
        dispatcher: LifecycleDispatcher | None = None,
        max_retries: int | None = None,
    ) -> None:
        self.registry = registry
        self.tenants = tenants
        self.dispatcher = dispatcher or LifecycleDispatcher()
        self.max_retries = max_retries or get_settings().plugin_update_max_retries

        groups: dict[str, GroupPlugins] = {}
        for group_key in registry.group_keys():
            group = registry.group(group_key)
            handles = {
                key: PluginHandle(self, group_key, definition, registry.hooks_for(group_key, key))
                for key, definition in group.plugins.items()
            }
            groups[group_key] = GroupPlugins(group_key, handles)

        self.groups = registry
        self.plugins = PluginDirectory(registry, groups)
        log.info("plugin_manager_ready", groups=len(groups))

    def plugin(self, group_key: str, plugin_key: str) -> PluginHandle:
        """Resolve a handle, failing before any tenant lookup on unknown keys."""
        return self.plugins[group_key][plugin_key]

    async def _load_tenant(self, tenant_id: str) -> Tenant:
        tenant = await self.tenants.get_by_id(tenant_id)
        if tenant is None:
            log.error("tenant_not_found", tenant_id=tenant_id)
            raise TenantNotFoundError(
                f"Tenant with id {tenant_id} not found",
                context={"tenant_id": tenant_id},
            )
        return tenant
