"""Business logic for interacting with the record store database."""
from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import NoResultFound
from sqlalchemy.ext.asyncio import AsyncSession

from . import schemas
from .models import Product, Sale


def _new_identifier() -> str:
    return str(uuid.uuid4())


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def create_product(session: AsyncSession, data: schemas.ProductCreate) -> Product:
    values = data.model_dump()
    values["id"] = values.get("id") or _new_identifier()
    product = Product(**values)
    session.add(product)
    await session.flush()
    return product


async def list_products(session: AsyncSession) -> Sequence[Product]:
    stmt = select(Product).order_by(Product.created_at, Product.name)
    result = await session.execute(stmt)
    return result.scalars().all()


async def get_product(session: AsyncSession, product_id: str) -> Product:
    stmt = select(Product).where(Product.id == product_id)
    result = await session.execute(stmt)
    product = result.scalar_one_or_none()
    if product is None:
        raise NoResultFound(f"Product {product_id} not found")
    return product


async def update_product(
    session: AsyncSession, product: Product, data: schemas.ProductUpdate
) -> Product:
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(product, field, value)
    await session.flush()
    return product


async def delete_product(session: AsyncSession, product_id: str) -> int:
    stmt = delete(Product).where(Product.id == product_id).returning(Product.id)
    result = await session.execute(stmt)
    return len(result.all())


async def list_sales(session: AsyncSession) -> Sequence[Sale]:
    stmt = select(Sale).order_by(Sale.date.desc())
    result = await session.execute(stmt)
    return result.scalars().all()


async def create_sales(
    session: AsyncSession, payloads: Sequence[schemas.SaleCreate]
) -> list[Sale]:
    sales: list[Sale] = []
    for data in payloads:
        values = data.model_dump()
        values["id"] = values.get("id") or f"sale_{uuid.uuid4().hex}"
        values["date"] = values.get("date") or _iso_now()
        sale = Sale(**values)
        session.add(sale)
        sales.append(sale)
    await session.flush()
    return sales


async def delete_sales(
    session: AsyncSession,
    *,
    sale_id: str | None = None,
    product_id: str | None = None,
) -> int:
    if sale_id is None and product_id is None:
        raise ValueError("Either a sale id or a product id is required.")
    stmt = delete(Sale)
    if sale_id is not None:
        stmt = stmt.where(Sale.id == sale_id)
    if product_id is not None:
        stmt = stmt.where(Sale.product_id == product_id)
    result = await session.execute(stmt.returning(Sale.id))
    return len(result.all())


__all__ = [name for name in globals() if not name.startswith("_")]
