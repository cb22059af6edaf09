#!/usr/bin/env python3
"""Initialize the Orbit database schema and seed the plan catalogue."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.billing.plans import PLAN_CATALOG
from src.core.logging import setup_logging, get_logger
from src.data.db import init_schema, close_engine, get_engine
from src.data.repositories import PlanRepository

log = get_logger(__name__)


async def main() -> None:
    setup_logging()
    log.info("starting_schema_initialization")

    try:
        await init_schema()
        plans = PlanRepository(await get_engine())
        for definition in PLAN_CATALOG.values():
            await plans.upsert(definition.to_plan())
        log.info("schema_initialization_complete", plans=len(PLAN_CATALOG))
    except Exception as exc:
        log.error("schema_initialization_failed", error=str(exc))
        raise
    finally:
        await close_engine()


if __name__ == "__main__":
    asyncio.run(main())
