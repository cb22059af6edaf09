"""SaaS multi-tenant layer — tenant settings, tenant creation and invites."""

from src.saas.settings import (
    default_tenant_settings,
    merge_settings,
    missing_plugin_defaults,
    plugin_patch,
    plugin_state,
)
from src.saas.tenant import TenantService, slugify

__all__ = [
    "TenantService",
    "default_tenant_settings",
    "merge_settings",
    "missing_plugin_defaults",
    "plugin_patch",
    "plugin_state",
    "slugify",
]
