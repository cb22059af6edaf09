"""Discord notifier — posts messages to a channel webhook."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, Field

from src.core.constants import DISCORD_WEBHOOK_OK_STATUS, PLUGIN_DISCORD
from src.core.logging import get_logger
from src.plugins.base import PluginDefinition, PluginHelp, PluginHelpLink, PluginOptions
from src.plugins.notifications.base import NotifierBase
from src.plugins.notifications.templates import DISCORD_TEMPLATES

log = get_logger(__name__)


class DiscordConfig(BaseModel):
    webhook_url: str | None = Field(
        default=None,
        title="Webhook URL",
        description="Channel webhook created under Server Settings → Integrations",
        json_schema_extra={"placeholder": "https://discord.com/api/webhooks/..."},
    )


DEFINITION = PluginDefinition(
    key=PLUGIN_DISCORD,
    name="Discord",
    description="Send messages to a Discord channel via Webhook",
    icon="/assets/icons/discord.svg",
    help="Use this integration to send messages to a specific Discord channel using a Webhook URL",
    options=PluginOptions(
        help=PluginHelp(
            title="Discord Integration Help",
            description="Learn how to set up and use the Discord Webhook integration",
            link=PluginHelpLink(
                label="View Discord Webhook Setup Guide",
                url="https://support.discord.com/hc/en-us/articles/228383668-Intro-to-Webhooks",
            ),
        ),
    ),
    config_schema=DiscordConfig,
)


class DiscordNotifier(NotifierBase):
    key = PLUGIN_DISCORD
    templates = DISCORD_TEMPLATES

    async def _deliver(
        self,
        client: httpx.AsyncClient,
        config: dict[str, Any],
        message: dict[str, Any],
    ) -> None:
        webhook_url = config.get("webhook_url")
        if not webhook_url:
            raise ValueError("Discord webhook URL is not configured")
        response = await client.post(webhook_url, json=message)
        response.raise_for_status()

    async def on_validate(self, tenant_id: str, config: dict[str, Any]) -> bool:
        """Accept the webhook only if Discord answers a test post with 204."""
        webhook_url = config.get("webhook_url")
        if not webhook_url:
            return False
        try:
            async with self._client_factory() as client:
                response = await client.post(
                    webhook_url,
                    json={"content": "Validating Discord webhook"},
                )
        except httpx.HTTPError as exc:
            log.warning("discord_webhook_validation_failed", tenant_id=tenant_id, error=str(exc))
            return False
        return response.status_code == DISCORD_WEBHOOK_OK_STATUS
