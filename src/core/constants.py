"""System-wide constants. All magic numbers and strings live here."""

from __future__ import annotations

# ── Billing Feature IDs ──────────────────────────────────────────
FEATURE_TEAM_MEMBERS = "TEAM_MEMBERS"
FEATURE_INTEGRATIONS = "INTEGRATIONS"
FEATURE_EMAIL_SUPPORT = "EMAIL_SUPPORT"
FEATURE_PRIORITY_SUPPORT = "PRIORITY_SUPPORT"

# Features whose usage is counted over all time instead of the current month
UNBOUNDED_WINDOW_FEATURES = frozenset({FEATURE_TEAM_MEMBERS})

# ── Countable Tables ─────────────────────────────────────────────
TABLE_MEMBERSHIPS = "memberships"

# ── Plugin Runtime ───────────────────────────────────────────────
PLUGIN_GROUP_NOTIFICATIONS = "notifications"
PLUGIN_DISCORD = "discord"
PLUGIN_TELEGRAM = "telegram"

# Operation names owned by the manager; plugins may not override them
RESERVED_PLUGIN_METHODS = frozenset({"is_installed", "update", "activate", "deactivate"})

SETTINGS_PLUGINS_KEY = "plugins"
PLUGIN_CONFIG_KEY = "config"

# ── HTTP ─────────────────────────────────────────────────────────
DISCORD_WEBHOOK_OK_STATUS = 204
TELEGRAM_PARSE_MODE = "HTML"

# ── Invites ──────────────────────────────────────────────────────
INVITE_QUOTA_FEATURE_NAME = "invites"
