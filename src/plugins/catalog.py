"""Built-in plugin catalogue.

``build_registry`` is the single place where plugin definitions meet their
runtime hooks. Application startup calls it once and shares the result.
"""

from __future__ import annotations

from src.core.constants import PLUGIN_GROUP_NOTIFICATIONS
from src.core.interfaces import TenantRepositoryBase
from src.plugins.notifications import discord, telegram
from src.plugins.notifications.base import ClientFactory
from src.plugins.registry import PluginGroup, PluginRegistry


def build_registry(
    tenants: TenantRepositoryBase,
    client_factory: ClientFactory | None = None,
) -> PluginRegistry:
    discord_notifier = discord.DiscordNotifier(tenants, client_factory)
    telegram_notifier = telegram.TelegramNotifier(tenants, client_factory)

    notifications = PluginGroup.of(
        key=PLUGIN_GROUP_NOTIFICATIONS,
        name="Notifications",
        description="Receive your app events as notifications",
        icon="bell",
        plugins=[discord.DEFINITION, telegram.DEFINITION],
    )

    return PluginRegistry(
        [notifications],
        hooks={
            (PLUGIN_GROUP_NOTIFICATIONS, discord.DEFINITION.key): discord_notifier.hooks(),
            (PLUGIN_GROUP_NOTIFICATIONS, telegram.DEFINITION.key): telegram_notifier.hooks(),
        },
    )
