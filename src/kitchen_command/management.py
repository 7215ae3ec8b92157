"""Utility helpers for administrative tasks."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine

from .database import Base, create_session_factory, engine
from .models import Product
from .seed import SEED_PRODUCTS

logger = logging.getLogger(__name__)


async def init_database(db_engine: AsyncEngine | None = None) -> None:
    """Create database tables for the application."""

    engine_to_use = db_engine or engine
    async with engine_to_use.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_database(
    db_engine: AsyncEngine | None = None,
    products: Sequence[Mapping[str, Any]] = SEED_PRODUCTS,
) -> int:
    """Insert the seed catalog when the products table is empty."""

    engine_to_use = db_engine or engine
    session_factory = create_session_factory(engine_to_use)
    async with session_factory() as session:
        existing = await session.scalar(select(func.count()).select_from(Product))
        if existing:
            logger.info("Products table already holds %d rows; skipping seed", existing)
            return 0
        session.add_all(Product(**dict(record)) for record in products)
        await session.commit()
    logger.info("Seeded %d products", len(products))
    return len(products)


def cli_init_database() -> None:
    """CLI wrapper executed from :mod:`python -m`."""

    async def _run() -> None:
        await init_database()
        await seed_database()

    logging.basicConfig(level=logging.INFO)
    asyncio.run(_run())


if __name__ == "__main__":
    cli_init_database()
