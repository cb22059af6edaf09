"""Abstract base classes — every persistence collaborator implements one of these."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from src.core.types import Invite, MembershipRole, Plan, Subscription, Tenant


class TenantRepositoryBase(ABC):
    """Read/write contract for tenant records and their settings document."""

    @abstractmethod
    async def get_by_id(self, tenant_id: str) -> Tenant | None:
        """Look up a tenant by id."""
        ...

    @abstractmethod
    async def get_by_slug(self, slug: str) -> Tenant | None:
        """Look up a tenant by its unique slug."""
        ...

    @abstractmethod
    async def create(self, tenant: Tenant) -> Tenant:
        """Persist a new tenant and return the stored record."""
        ...

    @abstractmethod
    async def update(
        self,
        tenant_id: str,
        *,
        settings: Mapping[str, Any] | None = None,
        name: str | None = None,
        logo: str | None = None,
        expected_revision: int | None = None,
    ) -> Tenant:
        """Update a tenant.

        ``settings`` is a partial document deep-merged into the stored one:
        sibling keys survive and ``config`` objects are replaced wholesale.
        A settings write bumps ``settings_revision``. When
        ``expected_revision`` is given and no longer matches, raises
        ``SettingsConflictError`` without writing.
        """
        ...


class SubscriptionRepositoryBase(ABC):
    @abstractmethod
    async def find_first(self, tenant_id: str) -> Subscription | None:
        """Return the tenant's first (active) subscription record."""
        ...


class PlanRepositoryBase(ABC):
    @abstractmethod
    async def find_by_price_id(self, price_id: str) -> Plan | None:
        """Return the plan owning the given price."""
        ...


class UsageCounterBase(ABC):
    """Counts rows of a feature-configured table for one tenant."""

    @abstractmethod
    async def count(
        self,
        table: str,
        tenant_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        """Count active rows owned by ``tenant_id``.

        With ``start``/``end`` the count is restricted to rows whose
        ``created_at`` lies within the inclusive window.
        """
        ...


class InviteRepositoryBase(ABC):
    @abstractmethod
    async def get_by_email_and_tenant_id(self, email: str, tenant_id: str) -> Invite | None:
        ...

    @abstractmethod
    async def create(
        self,
        tenant_id: str,
        *,
        email: str,
        role: MembershipRole,
        expires_at: datetime,
    ) -> Invite:
        ...

    @abstractmethod
    async def update(self, invite_id: str, *, expires_at: datetime) -> Invite:
        ...
