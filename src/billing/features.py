"""Billing feature metadata — which plan metadata keys are countable, and where."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from src.core.constants import (
    FEATURE_EMAIL_SUPPORT,
    FEATURE_INTEGRATIONS,
    FEATURE_PRIORITY_SUPPORT,
    FEATURE_TEAM_MEMBERS,
    TABLE_MEMBERSHIPS,
)


@dataclass(frozen=True)
class FeatureMeta:
    """Display metadata for a plan-gated feature.

    ``table`` names the tenant-owned table whose rows measure usage. Features
    without a table are flag-only: the plan either grants them or not.
    """

    name: str
    label: str
    table: str | None = None

    @property
    def countable(self) -> bool:
        return self.table is not None


BILLING_FEATURES: Mapping[str, FeatureMeta] = MappingProxyType({
    FEATURE_TEAM_MEMBERS: FeatureMeta(
        name="Seats",
        label="{{ value }} seats",
        table=TABLE_MEMBERSHIPS,
    ),
    FEATURE_INTEGRATIONS: FeatureMeta(name="Integrations", label="Third-party integrations"),
    FEATURE_EMAIL_SUPPORT: FeatureMeta(name="Email support", label="Email support"),
    FEATURE_PRIORITY_SUPPORT: FeatureMeta(name="Priority Support", label="Priority Support"),
})


def format_feature_label(
    feature_id: str,
    value: str,
    features: Mapping[str, FeatureMeta] = BILLING_FEATURES,
) -> str | None:
    """Render the pricing-table label of a plan metadata entry, or None if unknown."""
    meta = features.get(feature_id)
    if meta is None:
        return None
    return meta.label.replace("{{ value }}", value)
