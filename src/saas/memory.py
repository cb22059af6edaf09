"""In-memory repositories for local development and tests.

They follow the same contract as the SQL adapters in ``src.data.repositories``:
settings writes deep-merge, bump ``settings_revision`` and honour
``expected_revision``. Returned records are copies, so callers never alias
stored state.
"""

from __future__ import annotations

import copy
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from uuid_extensions import uuid7

from src.core.exceptions import NotFoundError, SettingsConflictError, TenantNotFoundError
from src.core.interfaces import (
    InviteRepositoryBase,
    PlanRepositoryBase,
    SubscriptionRepositoryBase,
    TenantRepositoryBase,
    UsageCounterBase,
)
from src.core.types import Invite, MembershipRole, Plan, Subscription, Tenant
from src.saas.settings import merge_settings


def _copy_tenant(tenant: Tenant) -> Tenant:
    return replace(tenant, settings=copy.deepcopy(tenant.settings))


class InMemoryTenantRepository(TenantRepositoryBase):
    def __init__(self, tenants: list[Tenant] | None = None) -> None:
        self._tenants: dict[str, Tenant] = {}
        for tenant in tenants or []:
            self._tenants[tenant.id] = _copy_tenant(tenant)

    async def get_by_id(self, tenant_id: str) -> Tenant | None:
        tenant = self._tenants.get(tenant_id)
        if tenant is None or tenant.deleted_at is not None:
            return None
        return _copy_tenant(tenant)

    async def get_by_slug(self, slug: str) -> Tenant | None:
        for tenant in self._tenants.values():
            if tenant.slug == slug and tenant.deleted_at is None:
                return _copy_tenant(tenant)
        return None

    async def create(self, tenant: Tenant) -> Tenant:
        stored = _copy_tenant(tenant)
        self._tenants[stored.id] = stored
        return _copy_tenant(stored)

    async def update(
        self,
        tenant_id: str,
        *,
        settings: Mapping[str, Any] | None = None,
        name: str | None = None,
        logo: str | None = None,
        expected_revision: int | None = None,
    ) -> Tenant:
        stored = self._tenants.get(tenant_id)
        if stored is None or stored.deleted_at is not None:
            raise TenantNotFoundError(
                f"Tenant with id {tenant_id} not found",
                context={"tenant_id": tenant_id},
            )
        if expected_revision is not None and stored.settings_revision != expected_revision:
            raise SettingsConflictError(
                f"Settings of tenant {tenant_id} changed concurrently",
                context={
                    "tenant_id": tenant_id,
                    "expected_revision": expected_revision,
                    "current_revision": stored.settings_revision,
                },
            )

        if settings is not None:
            stored.settings = merge_settings(stored.settings, settings)
            stored.settings_revision += 1
        if name is not None:
            stored.name = name
        if logo is not None:
            stored.logo = logo
        stored.updated_at = datetime.now(timezone.utc)
        return _copy_tenant(stored)


class InMemorySubscriptionRepository(SubscriptionRepositoryBase):
    def __init__(self, subscriptions: list[Subscription] | None = None) -> None:
        self._subscriptions = list(subscriptions or [])

    def add(self, subscription: Subscription) -> None:
        self._subscriptions.append(subscription)

    async def find_first(self, tenant_id: str) -> Subscription | None:
        for subscription in self._subscriptions:
            if subscription.tenant_id == tenant_id:
                return subscription
        return None


class InMemoryPlanRepository(PlanRepositoryBase):
    def __init__(self, plans: list[Plan] | None = None) -> None:
        self._plans = list(plans or [])

    def add(self, plan: Plan) -> None:
        self._plans.append(plan)

    async def find_by_price_id(self, price_id: str) -> Plan | None:
        for plan in self._plans:
            if any(price.id == price_id for price in plan.prices):
                return plan
        return None


class InMemoryUsageCounter(UsageCounterBase):
    """Counts records added per table name.

    A record is any object with ``tenant_id`` and optionally ``created_at``
    and ``deleted_at`` attributes. Soft-deleted records are never counted.
    """

    def __init__(self) -> None:
        self._rows: dict[str, list[Any]] = defaultdict(list)

    def add(self, table: str, record: Any) -> None:
        self._rows[table].append(record)

    async def count(
        self,
        table: str,
        tenant_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        total = 0
        for record in self._rows.get(table, []):
            if record.tenant_id != tenant_id or getattr(record, "deleted_at", None) is not None:
                continue
            created_at = getattr(record, "created_at", None)
            if start is not None and (created_at is None or created_at < start):
                continue
            if end is not None and (created_at is None or created_at > end):
                continue
            total += 1
        return total


class InMemoryInviteRepository(InviteRepositoryBase):
    def __init__(self) -> None:
        self._invites: dict[str, Invite] = {}

    async def get_by_email_and_tenant_id(self, email: str, tenant_id: str) -> Invite | None:
        for invite in self._invites.values():
            if invite.email == email and invite.tenant_id == tenant_id:
                return replace(invite)
        return None

    async def create(
        self,
        tenant_id: str,
        *,
        email: str,
        role: MembershipRole,
        expires_at: datetime,
    ) -> Invite:
        invite = Invite(
            id=str(uuid7()),
            email=email,
            tenant_id=tenant_id,
            role=role,
            expires_at=expires_at,
        )
        self._invites[invite.id] = invite
        return replace(invite)

    async def update(self, invite_id: str, *, expires_at: datetime) -> Invite:
        invite = self._invites.get(invite_id)
        if invite is None:
            raise NotFoundError(f"Invite {invite_id} not found", context={"invite_id": invite_id})
        invite.expires_at = expires_at
        invite.updated_at = datetime.now(timezone.utc)
        return replace(invite)

    def all(self) -> list[Invite]:
        return [replace(invite) for invite in self._invites.values()]
