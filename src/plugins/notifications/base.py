"""Shared plumbing for notification plugins (HTTP client, tenant config lookup)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from config.settings import get_settings
from src.core.constants import PLUGIN_GROUP_NOTIFICATIONS
from src.core.exceptions import TenantNotFoundError
from src.core.interfaces import TenantRepositoryBase
from src.core.logging import get_logger
from src.core.types import Tenant, TenantPluginState
from src.plugins.base import PluginHooks, plugin_id
from src.plugins.notifications.templates import interpolate_object
from src.saas.settings import plugin_state

log = get_logger(__name__)

ClientFactory = Callable[[], httpx.AsyncClient]


def default_client_factory() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=get_settings().plugin_http_timeout_seconds)


class NotifierBase(ABC):
    """Base for channel notifiers. Subclasses implement ``_deliver``.

    ``send_message`` never raises: delivery problems are logged and reported
    through its boolean result.
    """

    key: str = ""
    templates: Mapping[str, Mapping[str, Any]] = {}

    def __init__(
        self,
        tenants: TenantRepositoryBase,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._tenants = tenants
        self._client_factory = client_factory or default_client_factory
        self._plugin_id = plugin_id(PLUGIN_GROUP_NOTIFICATIONS, self.key)

    @abstractmethod
    async def _deliver(
        self,
        client: httpx.AsyncClient,
        config: dict[str, Any],
        message: dict[str, Any],
    ) -> None:
        """Send one rendered message through ``client`` using the tenant's config."""
        ...

    async def send_message(
        self,
        tenant_id: str,
        template: str,
        data: Mapping[str, Any] | None = None,
    ) -> bool:
        """Render ``template`` with ``data`` and deliver it to the tenant's channel."""
        try:
            tenant, state = await self._load(tenant_id)
            if not state.enabled:
                log.debug("notification_skipped_disabled", tenant_id=tenant_id, plugin=self._plugin_id)
                return False

            selected = self.templates.get(template)
            if selected is None:
                log.error("notification_template_missing", plugin=self._plugin_id, template=template)
                return False

            context = {"team": tenant.name, **dict(data or {})}
            message = interpolate_object(selected, context)
            async with self._client_factory() as client:
                await self._deliver(client, state.config, message)
        except Exception as exc:
            log.error(
                "notification_send_failed",
                tenant_id=tenant_id,
                plugin=self._plugin_id,
                template=template,
                error=str(exc),
            )
            return False

        log.info("notification_sent", tenant_id=tenant_id, plugin=self._plugin_id, template=template)
        return True

    async def on_update(self, tenant_id: str, config: dict[str, Any]) -> None:
        log.info("notification_plugin_updated", tenant_id=tenant_id, plugin=self._plugin_id)
        await self.send_message(tenant_id, "welcome")

    async def on_uninstall(self, tenant_id: str) -> None:
        log.info("notification_plugin_uninstalled", tenant_id=tenant_id, plugin=self._plugin_id)

    async def on_validate(self, tenant_id: str, config: dict[str, Any]) -> bool:
        return True

    def hooks(self) -> PluginHooks:
        return PluginHooks(
            on_update=self.on_update,
            on_uninstall=self.on_uninstall,
            on_validate=self.on_validate,
            methods={"send_message": self.send_message},
        )

    async def _load(self, tenant_id: str) -> tuple[Tenant, TenantPluginState]:
        tenant = await self._tenants.get_by_id(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(
                f"Tenant with id {tenant_id} not found",
                context={"tenant_id": tenant_id},
            )
        return tenant, plugin_state(tenant.settings, PLUGIN_GROUP_NOTIFICATIONS, self.key)
