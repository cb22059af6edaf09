"""Team invites — gated by the plan's seat quota."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from config.settings import get_settings
from src.billing.quota import QuotaProvider
from src.core.constants import FEATURE_TEAM_MEMBERS, INVITE_QUOTA_FEATURE_NAME
from src.core.exceptions import QuotaExceededError, TenantNotFoundError
from src.core.interfaces import InviteRepositoryBase, TenantRepositoryBase
from src.core.logging import get_logger
from src.core.types import Invite, MembershipRole

log = get_logger(__name__)


class CreateInviteUseCase:
    """Create an invite, or refresh the expiry of a pending one for the same email.

    Raises ``QuotaExceededError("invites")`` when the tenant has no free
    seat left, so callers can show an upgrade prompt.
    """

    def __init__(
        self,
        invites: InviteRepositoryBase,
        tenants: TenantRepositoryBase,
        quota: QuotaProvider,
        expiry_days: int | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._invites = invites
        self._tenants = tenants
        self._quota = quota
        self._expiry_days = expiry_days or get_settings().invite_expiry_days
        self._now = now or (lambda: datetime.now(timezone.utc))

    async def execute(
        self,
        tenant_id: str,
        email: str,
        role: MembershipRole = MembershipRole.MEMBER,
    ) -> Invite:
        if await self._tenants.get_by_id(tenant_id) is None:
            raise TenantNotFoundError(
                "Tenant does not exist",
                context={"tenant_id": tenant_id},
            )

        seats = await self._quota.get_feature_quota(tenant_id, FEATURE_TEAM_MEMBERS)
        if not seats.available or (seats.quota is not None and seats.quota.available <= 0):
            log.warning("invite_quota_exceeded", tenant_id=tenant_id, email=email)
            raise QuotaExceededError(
                INVITE_QUOTA_FEATURE_NAME,
                context={"tenant_id": tenant_id},
            )

        expires_at = self._now() + timedelta(days=self._expiry_days)

        existing = await self._invites.get_by_email_and_tenant_id(email, tenant_id)
        if existing is not None:
            invite = await self._invites.update(existing.id, expires_at=expires_at)
            log.info("invite_refreshed", tenant_id=tenant_id, invite_id=invite.id)
            return invite

        invite = await self._invites.create(
            tenant_id,
            email=email,
            role=role,
            expires_at=expires_at,
        )
        log.info("invite_created", tenant_id=tenant_id, invite_id=invite.id, role=role.value)
        return invite
