"""Tests for core type definitions and the exception hierarchy."""

from __future__ import annotations

import dataclasses

import pytest

from src.core.exceptions import (
    FeatureNotFoundError,
    InvalidPluginConfigError,
    NotFoundError,
    OrbitBaseError,
    PlanNotFoundError,
    PluginGroupNotFoundError,
    PluginNotFoundError,
    PluginRejectedConfigError,
    PluginValidationError,
    QuotaExceededError,
    SubscriptionNotFoundError,
    TenantNotFoundError,
)
from src.core.types import FeatureQuota, MembershipRole, QuotaUsage, Tenant, TenantPluginState


class TestTenant:
    def test_defaults(self) -> None:
        tenant = Tenant(id="t1", name="Acme", slug="acme")
        assert tenant.settings == {}
        assert tenant.settings_revision == 0
        assert tenant.deleted_at is None
        assert tenant.created_at.tzinfo is not None

    def test_settings_not_shared(self) -> None:
        a = Tenant(id="a", name="A", slug="a")
        b = Tenant(id="b", name="B", slug="b")
        a.settings["x"] = 1
        assert b.settings == {}


class TestTenantPluginState:
    def test_to_dict_copies_config(self) -> None:
        state = TenantPluginState(enabled=True, config={"k": "v"})
        data = state.to_dict()
        data["config"]["k"] = "changed"
        assert state.config == {"k": "v"}
        assert data["enabled"] is True


class TestQuotaTypes:
    def test_frozen(self) -> None:
        quota = FeatureQuota(id="TEAM_MEMBERS", available=True, quota=QuotaUsage(5, 3, 2, 60.0))
        with pytest.raises(dataclasses.FrozenInstanceError):
            quota.available = False  # type: ignore[misc]

    def test_flag_quota_has_no_usage(self) -> None:
        assert FeatureQuota(id="INTEGRATIONS", available=True).quota is None


class TestMembershipRole:
    def test_values(self) -> None:
        assert MembershipRole("owner") is MembershipRole.OWNER
        assert MembershipRole.MEMBER.value == "member"


class TestExceptions:
    @pytest.mark.parametrize(
        "error_cls",
        [
            PluginGroupNotFoundError,
            PluginNotFoundError,
            TenantNotFoundError,
            SubscriptionNotFoundError,
            PlanNotFoundError,
            FeatureNotFoundError,
        ],
    )
    def test_not_found_family(self, error_cls: type[NotFoundError]) -> None:
        err = error_cls("missing", context={"id": "x"})
        assert isinstance(err, NotFoundError)
        assert isinstance(err, OrbitBaseError)
        assert err.context == {"id": "x"}

    def test_validation_family_distinct(self) -> None:
        invalid = InvalidPluginConfigError("bad", plugin="discord", field="webhook_url")
        rejected = PluginRejectedConfigError("no", plugin="discord")
        assert isinstance(invalid, PluginValidationError)
        assert isinstance(rejected, PluginValidationError)
        assert not isinstance(rejected, InvalidPluginConfigError)
        assert invalid.field == "webhook_url"
        assert rejected.field is None

    def test_quota_exceeded_message(self) -> None:
        err = QuotaExceededError("invites")
        assert err.feature == "invites"
        assert err.message == "Quota exceeded for feature: invites"
        assert err.context == {}
