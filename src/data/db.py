"""PostgreSQL connection and schema definitions."""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from config.settings import get_settings
from src.core.logging import get_logger

log = get_logger(__name__)

metadata = MetaData()

# ── Tables ───────────────────────────────────────────────────────

tenants = Table(
    "tenants",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=False),
    Column("slug", String, nullable=False, unique=True),
    Column("settings", JSONB, nullable=False, server_default="{}"),
    Column("settings_revision", Integer, nullable=False, server_default="0"),
    Column("logo", String),
    Column("payment_provider_id", String),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("deleted_at", DateTime(timezone=True)),
)

plans = Table(
    "plans",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=False),
    Column("description", String),
    Column("active", Boolean, nullable=False, server_default="true"),
    Column("payment_provider_id", String, nullable=False, server_default=""),
    Column("metadata", JSONB, nullable=False, server_default="{}"),
)

plan_prices = Table(
    "plan_prices",
    metadata,
    Column("id", String, primary_key=True),
    Column("plan_id", String, nullable=False, index=True),
    Column("price", Integer, nullable=False),
    Column("currency", String, nullable=False),
    Column("interval", String, nullable=False),
    Column("interval_count", Integer, nullable=False, server_default="1"),
    Column("active", Boolean, nullable=False, server_default="true"),
    Column("type", String, nullable=False, server_default="recurring"),
    Column("payment_provider_id", String, nullable=False, server_default=""),
    Column("trial_period_days", Integer),
)

subscriptions = Table(
    "subscriptions",
    metadata,
    Column("id", String, primary_key=True),
    Column("tenant_id", String, nullable=False, index=True),
    Column("price_id", String, nullable=False),
    Column("status", String, nullable=False),
    Column("payment_provider_id", String, nullable=False, server_default=""),
    Column("cancel_at_period_end", Boolean, nullable=False, server_default="false"),
    Column("current_period_start", DateTime(timezone=True)),
    Column("current_period_end", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

memberships = Table(
    "memberships",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, nullable=False, index=True),
    Column("tenant_id", String, nullable=False, index=True),
    Column("role", String, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("deleted_at", DateTime(timezone=True)),
)

invites = Table(
    "invites",
    metadata,
    Column("id", String, primary_key=True),
    Column("email", String, nullable=False),
    Column("tenant_id", String, nullable=False, index=True),
    Column("role", String, nullable=False),
    Column("expires_at", DateTime(timezone=True), nullable=False),
    Column("accepted_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("email", "tenant_id", name="uq_invites_email_tenant"),
)


# ── Engine ───────────────────────────────────────────────────────

_engine: AsyncEngine | None = None


async def get_engine() -> AsyncEngine:
    """Get or create the async database engine (singleton)."""
    global _engine  # noqa: PLW0603
    if _engine is None:
        settings = get_settings()
        db_url = settings.database_url.get_secret_value()
        _engine = create_async_engine(
            db_url,
            echo=False,
            pool_size=10,
            max_overflow=20,
        )
        log.info("database_engine_created", host=db_url.split("@")[-1].split("?")[0])
    return _engine


async def init_schema() -> None:
    """Create all tables that do not exist yet."""
    engine = await get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    log.info("schema_initialized", tables=sorted(metadata.tables))


async def close_engine() -> None:
    """Dispose the database engine."""
    global _engine  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        log.info("database_engine_closed")
