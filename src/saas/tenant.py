"""Tenant management — creation with default settings and settings backfill.

Each tenant has:
- Unique id (UUIDv7) and URL slug
- A settings document seeded with billing, email, integration tokens and one
  disabled entry per registered plugin
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Mapping
from typing import Any

from uuid_extensions import uuid7

from src.core.exceptions import SlugAlreadyExistsError, TenantNotFoundError
from src.core.interfaces import TenantRepositoryBase
from src.core.logging import get_logger
from src.core.types import Tenant
from src.plugins.registry import PluginRegistry
from src.saas.settings import default_tenant_settings, merge_settings, missing_plugin_defaults

log = get_logger(__name__)


def slugify(text: str, suffix: str | None = None) -> str:
    """Lowercase ASCII slug: accents dropped, runs of space/underscore/hyphen become one hyphen."""
    normalized = unicodedata.normalize("NFKD", text).lower().strip()
    slug = re.sub(r"[^a-z0-9\s_-]", "", normalized)
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    if suffix:
        return f"{slug}-{suffix}" if slug else suffix
    return slug


class TenantService:
    """Creates tenants and keeps their plugin settings in step with the registry."""

    def __init__(self, tenants: TenantRepositoryBase, registry: PluginRegistry) -> None:
        self._tenants = tenants
        self._registry = registry

    async def create_tenant(
        self,
        name: str,
        slug: str | None = None,
        billing_email: str | None = None,
        settings: Mapping[str, Any] | None = None,
        logo: str | None = None,
        payment_provider_id: str | None = None,
    ) -> Tenant:
        """Create a tenant with default settings, overlaid with ``settings``.

        Raises:
            SlugAlreadyExistsError: ``slug`` (or the one derived from ``name``)
                is taken.
            ValueError: no usable slug can be derived.
        """
        slug = slugify(slug) if slug else slugify(name)
        if not slug:
            raise ValueError(f"Cannot derive a slug from {name!r}")

        if await self._tenants.get_by_slug(slug) is not None:
            log.warning("tenant_slug_taken", slug=slug)
            raise SlugAlreadyExistsError(
                f"Slug {slug} already exists",
                context={"slug": slug},
            )

        document = default_tenant_settings(self._registry, billing_email=billing_email)
        if settings:
            document = merge_settings(document, settings)

        tenant = await self._tenants.create(Tenant(
            id=str(uuid7()),
            name=name,
            slug=slug,
            settings=document,
            logo=logo,
            payment_provider_id=payment_provider_id,
        ))
        log.info("tenant_created", tenant_id=tenant.id, slug=tenant.slug)
        return tenant

    async def ensure_plugin_defaults(self, tenant_id: str) -> Tenant:
        """Add default entries for plugins registered after the tenant was created.

        Existing entries are never touched. Returns the tenant unchanged when
        nothing is missing.
        """
        tenant = await self._tenants.get_by_id(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(
                f"Tenant with id {tenant_id} not found",
                context={"tenant_id": tenant_id},
            )

        patch = missing_plugin_defaults(tenant.settings, self._registry)
        if not patch:
            return tenant

        updated = await self._tenants.update(
            tenant_id,
            settings=patch,
            expected_revision=tenant.settings_revision,
        )
        log.info(
            "tenant_plugin_defaults_backfilled",
            tenant_id=tenant_id,
            groups=sorted(patch["plugins"]),
        )
        return updated
