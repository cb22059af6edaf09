"""Quota provider — plan limits vs. live usage for every countable feature.

Usage::

    provider = QuotaProvider(tenants, subscriptions, plans, counter)
    quota = await provider.get_feature_quota(tenant_id, "TEAM_MEMBERS")
    if not quota.available:
        raise QuotaExceededError("invites")

Nothing here is cached: every call re-reads the tenant's subscription, plan
and row counts.
"""

from __future__ import annotations

import calendar
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from src.billing.features import BILLING_FEATURES, FeatureMeta
from src.core.constants import UNBOUNDED_WINDOW_FEATURES
from src.core.exceptions import (
    FeatureNotFoundError,
    PlanNotFoundError,
    SubscriptionNotFoundError,
    TenantNotFoundError,
)
from src.core.interfaces import (
    PlanRepositoryBase,
    SubscriptionRepositoryBase,
    TenantRepositoryBase,
    UsageCounterBase,
)
from src.core.logging import get_logger
from src.core.types import FeatureQuota, QuotaUsage

log = get_logger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def month_window(now: datetime) -> tuple[datetime, datetime]:
    """First and last instant of ``now``'s calendar month, in ``now``'s timezone."""
    last_day = calendar.monthrange(now.year, now.month)[1]
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    end = now.replace(day=last_day, hour=23, minute=59, second=59, microsecond=999_999)
    return start, end


def parse_limit(raw: Any) -> int | float:
    """Plan metadata limit as a number, ``int`` when it is integral.

    Raises:
        ValueError: the value is not numeric.
    """
    value = float(raw)
    return int(value) if value.is_integer() else value


def build_usage(total: int | float, usage: int) -> QuotaUsage:
    """Usage figures for one feature. ``usage_rate`` is not clamped at 100."""
    usage_rate = usage / total * 100 if total > 0 else 100.0
    return QuotaUsage(
        total=total,
        usage=usage,
        available=total - usage,
        usage_rate=usage_rate,
    )


class QuotaProvider:
    def __init__(
        self,
        tenants: TenantRepositoryBase,
        subscriptions: SubscriptionRepositoryBase,
        plans: PlanRepositoryBase,
        counter: UsageCounterBase,
        features: Mapping[str, FeatureMeta] | None = None,
        now: Clock | None = None,
    ) -> None:
        self._tenants = tenants
        self._subscriptions = subscriptions
        self._plans = plans
        self._counter = counter
        self._features = features if features is not None else BILLING_FEATURES
        self._now = now or _utcnow

    async def get_feature_quota(self, tenant_id: str, feature_id: str) -> FeatureQuota:
        """Quota of a single countable feature.

        Raises:
            FeatureNotFoundError: the feature is not a countable entry of the
                tenant's current plan.
        """
        log.debug("feature_quota_requested", tenant_id=tenant_id, feature=feature_id)
        for feature in await self.get_tenant_features(tenant_id):
            if feature.id == feature_id:
                return feature

        log.error("feature_quota_not_found", tenant_id=tenant_id, feature=feature_id)
        raise FeatureNotFoundError(
            f"Feature {feature_id} not found for tenant {tenant_id}",
            context={"tenant_id": tenant_id, "feature": feature_id},
        )

    async def get_tenant_features(self, tenant_id: str) -> list[FeatureQuota]:
        """Quota of every countable feature in the tenant's current plan.

        Flag-only features and metadata keys unknown to the feature table are
        omitted. A missing tenant, subscription or plan fails the whole call.
        """
        tenant = await self._tenants.get_by_id(tenant_id)
        if tenant is None:
            log.error("quota_tenant_not_found", tenant_id=tenant_id)
            raise TenantNotFoundError(
                f"Tenant {tenant_id} not found",
                context={"tenant_id": tenant_id},
            )

        subscription = await self._subscriptions.find_first(tenant_id)
        if subscription is None:
            log.error("quota_subscription_not_found", tenant_id=tenant_id)
            raise SubscriptionNotFoundError(
                f"No subscription found for tenant {tenant_id}",
                context={"tenant_id": tenant_id},
            )

        plan = await self._plans.find_by_price_id(subscription.price_id)
        if plan is None:
            log.error(
                "quota_plan_not_found",
                tenant_id=tenant_id,
                subscription_id=subscription.id,
                price_id=subscription.price_id,
            )
            raise PlanNotFoundError(
                f"Plan not found for subscription {subscription.id}",
                context={"tenant_id": tenant_id, "subscription_id": subscription.id},
            )

        start, end = month_window(self._now())
        features: list[FeatureQuota] = []

        for feature_id, raw_limit in (plan.metadata or {}).items():
            meta = self._features.get(feature_id)
            if meta is None or meta.table is None:
                continue

            try:
                total = parse_limit(raw_limit)
            except (TypeError, ValueError):
                log.warning(
                    "quota_limit_not_numeric",
                    tenant_id=tenant_id,
                    plan=plan.id,
                    feature=feature_id,
                    value=raw_limit,
                )
                continue

            if feature_id in UNBOUNDED_WINDOW_FEATURES:
                usage = await self._counter.count(meta.table, tenant_id)
            else:
                usage = await self._counter.count(meta.table, tenant_id, start=start, end=end)

            features.append(FeatureQuota(
                id=feature_id,
                available=usage < total,
                quota=build_usage(total, usage),
            ))

        log.info(
            "tenant_features_computed",
            tenant_id=tenant_id,
            plan=plan.id,
            features=len(features),
        )
        return features
