"""System-wide shared types — the single source of truth for all data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enums ────────────────────────────────────────────────────────

class MembershipRole(str, Enum):
    OWNER = "owner"
    MEMBER = "member"


class FieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"


# ── Tenancy ──────────────────────────────────────────────────────

@dataclass
class Tenant:
    """An organization owning its own plugin configuration and subscription.

    ``settings`` is the per-tenant JSON document. ``settings_revision`` is
    bumped on every settings write and used for optimistic concurrency.
    """

    id: str
    name: str
    slug: str
    settings: dict[str, Any] = field(default_factory=dict)
    logo: str | None = None
    payment_provider_id: str | None = None
    settings_revision: int = 0
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    deleted_at: datetime | None = None


@dataclass
class Membership:
    id: str
    user_id: str
    tenant_id: str
    role: MembershipRole = MembershipRole.MEMBER
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    deleted_at: datetime | None = None


@dataclass
class Invite:
    id: str
    email: str
    tenant_id: str
    role: MembershipRole
    expires_at: datetime
    accepted_at: datetime | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


# ── Billing ──────────────────────────────────────────────────────

@dataclass
class Subscription:
    id: str
    tenant_id: str
    price_id: str
    status: str
    payment_provider_id: str = ""
    cancel_at_period_end: bool = False
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class PlanPrice:
    id: str
    plan_id: str
    price: int  # smallest currency unit (cents)
    currency: str
    interval: str  # "month" | "year"
    interval_count: int = 1
    active: bool = True
    type: str = "recurring"
    payment_provider_id: str = ""
    trial_period_days: int | None = None


@dataclass
class Plan:
    """A subscribable plan. ``metadata`` maps billing feature ids to string limits."""

    id: str
    name: str
    metadata: dict[str, str] = field(default_factory=dict)
    description: str | None = None
    active: bool = True
    payment_provider_id: str = ""
    prices: list[PlanPrice] = field(default_factory=list)


# ── Plugins ──────────────────────────────────────────────────────

@dataclass
class TenantPluginState:
    """Stored state of one plugin for one tenant."""

    enabled: bool = False
    config: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"enabled": self.enabled, "config": dict(self.config)}


# ── Quota ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class QuotaUsage:
    total: int | float
    usage: int
    available: int | float
    usage_rate: float


@dataclass(frozen=True)
class FeatureQuota:
    """Derived usage accounting for one plan-gated feature. Never persisted."""

    id: str
    available: bool
    quota: QuotaUsage | None = None
