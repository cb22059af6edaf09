"""DB-backed repositories — PostgreSQL implementations of the core contracts."""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncEngine
from uuid_extensions import uuid7

from src.core.exceptions import NotFoundError, SettingsConflictError, TenantNotFoundError
from src.core.interfaces import (
    InviteRepositoryBase,
    PlanRepositoryBase,
    SubscriptionRepositoryBase,
    TenantRepositoryBase,
    UsageCounterBase,
)
from src.core.logging import get_logger
from src.core.types import Invite, MembershipRole, Plan, PlanPrice, Subscription, Tenant
from src.data.db import metadata
from src.saas.settings import merge_settings

log = get_logger(__name__)


def _json(value: Any) -> dict[str, Any]:
    if not value:
        return {}
    if isinstance(value, str):
        return json.loads(value)
    return dict(value)


class TenantRepository(TenantRepositoryBase):
    """Async PostgreSQL-backed tenant storage.

    Settings writes read the row ``FOR UPDATE``, merge in Python and write back
    with a revision guard, all inside one transaction.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def get_by_id(self, tenant_id: str) -> Tenant | None:
        async with self._engine.begin() as conn:
            row = await conn.execute(
                text("SELECT * FROM tenants WHERE id = :tid AND deleted_at IS NULL"),
                {"tid": tenant_id},
            )
            r = row.mappings().first()
            return None if r is None else self._row_to_tenant(r)

    async def get_by_slug(self, slug: str) -> Tenant | None:
        async with self._engine.begin() as conn:
            row = await conn.execute(
                text("SELECT * FROM tenants WHERE slug = :slug AND deleted_at IS NULL"),
                {"slug": slug},
            )
            r = row.mappings().first()
            return None if r is None else self._row_to_tenant(r)

    async def create(self, tenant: Tenant) -> Tenant:
        async with self._engine.begin() as conn:
            await conn.execute(
                text(
                    """
                    INSERT INTO tenants
                        (id, name, slug, settings, settings_revision, logo,
                         payment_provider_id, created_at, updated_at)
                    VALUES
                        (:tid, :name, :slug, CAST(:settings AS JSONB), :rev, :logo,
                         :ppid, :created_at, :updated_at)
                    """
                ),
                {
                    "tid": tenant.id,
                    "name": tenant.name,
                    "slug": tenant.slug,
                    "settings": json.dumps(tenant.settings),
                    "rev": tenant.settings_revision,
                    "logo": tenant.logo,
                    "ppid": tenant.payment_provider_id,
                    "created_at": tenant.created_at,
                    "updated_at": tenant.updated_at,
                },
            )
        log.info("tenant_inserted", tenant_id=tenant.id, slug=tenant.slug)
        return tenant

    async def update(
        self,
        tenant_id: str,
        *,
        settings: Mapping[str, Any] | None = None,
        name: str | None = None,
        logo: str | None = None,
        expected_revision: int | None = None,
    ) -> Tenant:
        async with self._engine.begin() as conn:
            row = await conn.execute(
                text(
                    "SELECT settings, settings_revision FROM tenants "
                    "WHERE id = :tid AND deleted_at IS NULL FOR UPDATE"
                ),
                {"tid": tenant_id},
            )
            current = row.mappings().first()
            if current is None:
                raise TenantNotFoundError(
                    f"Tenant with id {tenant_id} not found",
                    context={"tenant_id": tenant_id},
                )

            revision = current["settings_revision"]
            if expected_revision is not None and revision != expected_revision:
                log.warning(
                    "tenant_settings_conflict",
                    tenant_id=tenant_id,
                    expected_revision=expected_revision,
                    current_revision=revision,
                )
                raise SettingsConflictError(
                    f"Settings of tenant {tenant_id} changed concurrently",
                    context={
                        "tenant_id": tenant_id,
                        "expected_revision": expected_revision,
                        "current_revision": revision,
                    },
                )

            document = _json(current["settings"])
            new_revision = revision
            if settings is not None:
                document = merge_settings(document, settings)
                new_revision = revision + 1

            result = await conn.execute(
                text(
                    """
                    UPDATE tenants SET
                        settings = CAST(:settings AS JSONB),
                        settings_revision = :new_rev,
                        name = COALESCE(:name, name),
                        logo = COALESCE(:logo, logo),
                        updated_at = :now
                    WHERE id = :tid AND settings_revision = :rev
                    RETURNING *
                    """
                ),
                {
                    "settings": json.dumps(document),
                    "new_rev": new_revision,
                    "name": name,
                    "logo": logo,
                    "now": datetime.now(timezone.utc),
                    "tid": tenant_id,
                    "rev": revision,
                },
            )
            updated = result.mappings().first()
            if updated is None:
                raise SettingsConflictError(
                    f"Settings of tenant {tenant_id} changed concurrently",
                    context={"tenant_id": tenant_id, "expected_revision": revision},
                )

        log.debug("tenant_updated", tenant_id=tenant_id, settings_revision=new_revision)
        return self._row_to_tenant(updated)

    @staticmethod
    def _row_to_tenant(r: Mapping[str, Any]) -> Tenant:
        """Convert a DB row mapping to a Tenant dataclass."""
        return Tenant(
            id=r["id"],
            name=r["name"],
            slug=r["slug"],
            settings=_json(r.get("settings")),
            logo=r.get("logo"),
            payment_provider_id=r.get("payment_provider_id"),
            settings_revision=r.get("settings_revision") or 0,
            created_at=r["created_at"],
            updated_at=r["updated_at"],
            deleted_at=r.get("deleted_at"),
        )


class SubscriptionRepository(SubscriptionRepositoryBase):
    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def find_first(self, tenant_id: str) -> Subscription | None:
        async with self._engine.begin() as conn:
            row = await conn.execute(
                text(
                    "SELECT * FROM subscriptions WHERE tenant_id = :tid "
                    "ORDER BY created_at ASC LIMIT 1"
                ),
                {"tid": tenant_id},
            )
            r = row.mappings().first()
            if r is None:
                return None
            return Subscription(
                id=r["id"],
                tenant_id=r["tenant_id"],
                price_id=r["price_id"],
                status=r["status"],
                payment_provider_id=r.get("payment_provider_id") or "",
                cancel_at_period_end=bool(r.get("cancel_at_period_end")),
                current_period_start=r.get("current_period_start"),
                current_period_end=r.get("current_period_end"),
                created_at=r["created_at"],
            )


class PlanRepository(PlanRepositoryBase):
    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def find_by_price_id(self, price_id: str) -> Plan | None:
        async with self._engine.begin() as conn:
            row = await conn.execute(
                text(
                    "SELECT p.* FROM plans p "
                    "JOIN plan_prices pp ON pp.plan_id = p.id "
                    "WHERE pp.id = :price_id"
                ),
                {"price_id": price_id},
            )
            r = row.mappings().first()
            if r is None:
                return None

            prices = await conn.execute(
                text("SELECT * FROM plan_prices WHERE plan_id = :plan_id ORDER BY price"),
                {"plan_id": r["id"]},
            )
            return Plan(
                id=r["id"],
                name=r["name"],
                description=r.get("description"),
                active=bool(r.get("active", True)),
                payment_provider_id=r.get("payment_provider_id") or "",
                metadata={k: str(v) for k, v in _json(r.get("metadata")).items()},
                prices=[self._row_to_price(p) for p in prices.mappings().all()],
            )

    async def upsert(self, plan: Plan) -> None:
        """Insert or refresh a plan and its prices."""
        async with self._engine.begin() as conn:
            await conn.execute(
                text(
                    """
                    INSERT INTO plans (id, name, description, active, payment_provider_id, metadata)
                    VALUES (:id, :name, :description, :active, :ppid, CAST(:metadata AS JSONB))
                    ON CONFLICT (id) DO UPDATE SET
                        name = EXCLUDED.name,
                        description = EXCLUDED.description,
                        active = EXCLUDED.active,
                        metadata = EXCLUDED.metadata
                    """
                ),
                {
                    "id": plan.id,
                    "name": plan.name,
                    "description": plan.description,
                    "active": plan.active,
                    "ppid": plan.payment_provider_id,
                    "metadata": json.dumps(plan.metadata),
                },
            )
            for price in plan.prices:
                await conn.execute(
                    text(
                        """
                        INSERT INTO plan_prices
                            (id, plan_id, price, currency, interval, interval_count,
                             active, type, payment_provider_id, trial_period_days)
                        VALUES
                            (:id, :plan_id, :price, :currency, :interval, :interval_count,
                             :active, :type, :ppid, :trial)
                        ON CONFLICT (id) DO UPDATE SET
                            price = EXCLUDED.price,
                            currency = EXCLUDED.currency,
                            active = EXCLUDED.active
                        """
                    ),
                    {
                        "id": price.id,
                        "plan_id": plan.id,
                        "price": price.price,
                        "currency": price.currency,
                        "interval": price.interval,
                        "interval_count": price.interval_count,
                        "active": price.active,
                        "type": price.type,
                        "ppid": price.payment_provider_id,
                        "trial": price.trial_period_days,
                    },
                )
        log.info("plan_upserted", plan=plan.id, prices=len(plan.prices))

    @staticmethod
    def _row_to_price(r: Mapping[str, Any]) -> PlanPrice:
        return PlanPrice(
            id=r["id"],
            plan_id=r["plan_id"],
            price=r["price"],
            currency=r["currency"],
            interval=r["interval"],
            interval_count=r.get("interval_count") or 1,
            active=bool(r.get("active", True)),
            type=r.get("type") or "recurring",
            payment_provider_id=r.get("payment_provider_id") or "",
            trial_period_days=r.get("trial_period_days"),
        )


class UsageCounter(UsageCounterBase):
    """Counts rows of any table declared in ``src.data.db.metadata``.

    Rows are matched on ``tenant_id``. Soft-deleted rows are excluded when the
    table has a ``deleted_at`` column; the date window applies to
    ``created_at``.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def count(
        self,
        table: str,
        tenant_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        target = metadata.tables.get(table)
        if target is None:
            raise NotFoundError(f"Unknown usage table: {table}", context={"table": table})

        stmt = select(func.count()).select_from(target).where(target.c.tenant_id == tenant_id)
        if "deleted_at" in target.c:
            stmt = stmt.where(target.c.deleted_at.is_(None))
        if start is not None:
            stmt = stmt.where(target.c.created_at >= start)
        if end is not None:
            stmt = stmt.where(target.c.created_at <= end)

        async with self._engine.begin() as conn:
            result = await conn.execute(stmt)
            return result.scalar() or 0


class InviteRepository(InviteRepositoryBase):
    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def get_by_email_and_tenant_id(self, email: str, tenant_id: str) -> Invite | None:
        async with self._engine.begin() as conn:
            row = await conn.execute(
                text("SELECT * FROM invites WHERE email = :email AND tenant_id = :tid"),
                {"email": email, "tid": tenant_id},
            )
            r = row.mappings().first()
            return None if r is None else self._row_to_invite(r)

    async def create(
        self,
        tenant_id: str,
        *,
        email: str,
        role: MembershipRole,
        expires_at: datetime,
    ) -> Invite:
        now = datetime.now(timezone.utc)
        invite = Invite(
            id=str(uuid7()),
            email=email,
            tenant_id=tenant_id,
            role=role,
            expires_at=expires_at,
            created_at=now,
            updated_at=now,
        )
        async with self._engine.begin() as conn:
            await conn.execute(
                text(
                    """
                    INSERT INTO invites
                        (id, email, tenant_id, role, expires_at, created_at, updated_at)
                    VALUES
                        (:id, :email, :tid, :role, :expires_at, :now, :now)
                    """
                ),
                {
                    "id": invite.id,
                    "email": email,
                    "tid": tenant_id,
                    "role": role.value,
                    "expires_at": expires_at,
                    "now": now,
                },
            )
        return invite

    async def update(self, invite_id: str, *, expires_at: datetime) -> Invite:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(
                    "UPDATE invites SET expires_at = :expires_at, updated_at = :now "
                    "WHERE id = :id RETURNING *"
                ),
                {"expires_at": expires_at, "now": datetime.now(timezone.utc), "id": invite_id},
            )
            r = result.mappings().first()
            if r is None:
                raise NotFoundError(f"Invite {invite_id} not found", context={"invite_id": invite_id})
            return self._row_to_invite(r)

    @staticmethod
    def _row_to_invite(r: Mapping[str, Any]) -> Invite:
        return Invite(
            id=r["id"],
            email=r["email"],
            tenant_id=r["tenant_id"],
            role=MembershipRole(r["role"]),
            expires_at=r["expires_at"],
            accepted_at=r.get("accepted_at"),
            created_at=r["created_at"],
            updated_at=r["updated_at"],
        )
