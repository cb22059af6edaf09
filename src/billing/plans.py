"""Static plan catalogue seeded into the plans table.

Prices are in cents. Each plan has one monthly and one yearly recurring price;
metadata values are strings, matching what the payment provider stores.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.core.constants import (
    FEATURE_EMAIL_SUPPORT,
    FEATURE_INTEGRATIONS,
    FEATURE_PRIORITY_SUPPORT,
    FEATURE_TEAM_MEMBERS,
)
from src.core.types import Plan, PlanPrice

DEFAULT_CURRENCY = "usd"
FREE_PLAN_KEY = "free"


@dataclass(frozen=True)
class PlanDefinition:
    key: str
    name: str
    description: str
    monthly_price: int
    yearly_price: int
    metadata: dict[str, str] = field(default_factory=dict)

    def to_plan(self) -> Plan:
        """Materialize as a ``Plan`` with deterministic ids (``<key>``, ``<key>-month``...)."""
        prices = [
            PlanPrice(
                id=f"{self.key}-{interval}",
                plan_id=self.key,
                price=amount,
                currency=DEFAULT_CURRENCY,
                interval=interval,
            )
            for interval, amount in (("month", self.monthly_price), ("year", self.yearly_price))
        ]
        return Plan(
            id=self.key,
            name=self.name,
            description=self.description,
            metadata=dict(self.metadata),
            prices=prices,
        )


PLAN_CATALOG: dict[str, PlanDefinition] = {
    FREE_PLAN_KEY: PlanDefinition(
        key=FREE_PLAN_KEY,
        name="Free",
        description="For individuals getting started",
        monthly_price=0,
        yearly_price=0,
        metadata={
            FEATURE_TEAM_MEMBERS: "2",
            FEATURE_INTEGRATIONS: "true",
            FEATURE_EMAIL_SUPPORT: "true",
        },
    ),
    "indie": PlanDefinition(
        key="indie",
        name="Indie",
        description="For solo founders shipping fast",
        monthly_price=2900,
        yearly_price=29000,
        metadata={
            FEATURE_TEAM_MEMBERS: "4",
            FEATURE_INTEGRATIONS: "true",
            FEATURE_EMAIL_SUPPORT: "true",
        },
    ),
    "startup": PlanDefinition(
        key="startup",
        name="Startup",
        description="For growing teams",
        monthly_price=4900,
        yearly_price=49000,
        metadata={
            FEATURE_TEAM_MEMBERS: "6",
            FEATURE_INTEGRATIONS: "true",
            FEATURE_EMAIL_SUPPORT: "true",
            FEATURE_PRIORITY_SUPPORT: "true",
        },
    ),
}


def get_plan_definition(key: str) -> PlanDefinition:
    if key not in PLAN_CATALOG:
        raise KeyError(f"Unknown plan: {key}")
    return PLAN_CATALOG[key]
