"""Telegram notifier — sends chat messages through the Bot API."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, Field

from config.settings import get_settings
from src.core.constants import PLUGIN_TELEGRAM, TELEGRAM_PARSE_MODE
from src.core.interfaces import TenantRepositoryBase
from src.core.logging import get_logger
from src.plugins.base import PluginDefinition, PluginHelp, PluginHelpLink, PluginOptions
from src.plugins.notifications.base import ClientFactory, NotifierBase
from src.plugins.notifications.templates import TELEGRAM_TEMPLATES

log = get_logger(__name__)


class TelegramConfig(BaseModel):
    bot_token: str | None = Field(
        default=None,
        title="Bot Token",
        description="Token issued by @BotFather",
    )
    chat_id: str | None = Field(
        default=None,
        title="Chat ID",
        description="Numeric chat id; group chats start with '-'",
    )


DEFINITION = PluginDefinition(
    key=PLUGIN_TELEGRAM,
    name="Telegram",
    description="Send messages to a Telegram chat via Bot API",
    icon="/assets/icons/telegram.svg",
    help="Use this integration to send messages to a specific Telegram chat using a Bot Token",
    options=PluginOptions(
        requires_webhook=True,
        help=PluginHelp(
            title="Telegram Integration Help",
            description="Learn how to set up and use the Telegram Bot integration",
            link=PluginHelpLink(
                label="View Telegram Bot Setup Guide",
                url="https://core.telegram.org/bots#how-do-i-create-a-bot",
            ),
        ),
    ),
    config_schema=TelegramConfig,
)


def parse_chat_id(raw: str) -> int | str:
    """Numeric ids become ints; otherwise only '-'-prefixed ids are accepted."""
    try:
        return int(raw)
    except ValueError:
        if raw.startswith("-"):
            return raw
    raise ValueError(f"Invalid chat ID format: {raw!r}")


class TelegramNotifier(NotifierBase):
    key = PLUGIN_TELEGRAM
    templates = TELEGRAM_TEMPLATES

    def __init__(
        self,
        tenants: TenantRepositoryBase,
        client_factory: ClientFactory | None = None,
        api_base_url: str | None = None,
    ) -> None:
        super().__init__(tenants, client_factory)
        self._api_base_url = (api_base_url or get_settings().telegram_api_base_url).rstrip("/")

    def _url(self, bot_token: str, method: str) -> str:
        return f"{self._api_base_url}/bot{bot_token}/{method}"

    async def _deliver(
        self,
        client: httpx.AsyncClient,
        config: dict[str, Any],
        message: dict[str, Any],
    ) -> None:
        bot_token = config.get("bot_token")
        chat_id = config.get("chat_id")
        if not bot_token or not chat_id:
            raise ValueError("Telegram bot token or chat ID not configured")

        response = await client.post(
            self._url(bot_token, "sendMessage"),
            json={
                "chat_id": parse_chat_id(str(chat_id)),
                "text": message.get("content", ""),
                "parse_mode": TELEGRAM_PARSE_MODE,
            },
        )
        response.raise_for_status()

    async def on_validate(self, tenant_id: str, config: dict[str, Any]) -> bool:
        """Accept the token only if ``getMe`` reports ``ok: true``."""
        bot_token = config.get("bot_token")
        if not bot_token:
            return False
        try:
            async with self._client_factory() as client:
                response = await client.get(self._url(bot_token, "getMe"))
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            log.warning("telegram_token_validation_failed", tenant_id=tenant_id, error=str(exc))
            return False
        return isinstance(payload, dict) and payload.get("ok") is True
