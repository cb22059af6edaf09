"""Custom exception hierarchy for Orbit."""

from __future__ import annotations

from typing import Any


class OrbitBaseError(Exception):
    """Base exception for all Orbit errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}


# ── Not Found ────────────────────────────────────────────────────

class NotFoundError(OrbitBaseError):
    """A referenced entity does not exist. Never retried."""


class PluginGroupNotFoundError(NotFoundError):
    """Unknown plugin group key."""


class PluginNotFoundError(NotFoundError):
    """Unknown plugin key inside a known group."""


class TenantNotFoundError(NotFoundError):
    """No tenant record for the given id."""


class SubscriptionNotFoundError(NotFoundError):
    """The tenant has no subscription record."""


class PlanNotFoundError(NotFoundError):
    """No plan matches the subscription's price."""


class FeatureNotFoundError(NotFoundError):
    """The feature is absent from the tenant's current plan metadata."""


# ── Validation ───────────────────────────────────────────────────

class PluginValidationError(OrbitBaseError):
    """Plugin configuration was rejected before persistence."""

    def __init__(
        self,
        message: str,
        plugin: str,
        field: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context)
        self.plugin = plugin
        self.field = field


class InvalidPluginConfigError(PluginValidationError):
    """Configuration does not satisfy the plugin's schema."""


class PluginRejectedConfigError(PluginValidationError):
    """The plugin's own ``on_validate`` hook returned False."""


# ── Quota ────────────────────────────────────────────────────────

class QuotaExceededError(OrbitBaseError):
    """No remaining capacity for a plan-gated feature."""

    def __init__(self, feature: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(f"Quota exceeded for feature: {feature}", context)
        self.feature = feature


# ── Persistence ──────────────────────────────────────────────────

class SettingsConflictError(OrbitBaseError):
    """Tenant settings changed since they were read (revision mismatch)."""


# ── Plugin Runtime ───────────────────────────────────────────────

class PluginRegistryError(OrbitBaseError):
    """Registry source data is malformed (duplicate or mismatched keys)."""


class UnsupportedPluginOperationError(OrbitBaseError):
    """The plugin does not implement the requested capability."""


# ── Tenancy ──────────────────────────────────────────────────────

class SlugAlreadyExistsError(OrbitBaseError):
    """Another tenant already owns the requested slug."""
