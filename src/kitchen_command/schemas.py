"""Pydantic schemas used by the record store API and its client."""
from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exposing camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProductBase(CamelModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    price: float = Field(..., ge=0)
    stock: int = Field(0, ge=0)


class ProductCreate(ProductBase):
    id: str | None = Field(default=None, description="Optional caller supplied identifier.")


class ProductUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)


class ProductOut(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: str


class SaleBase(CamelModel):
    product_id: str
    product_name: str
    quantity: int = Field(..., gt=0)
    total_amount: float = Field(..., ge=0)


class SaleCreate(SaleBase):
    id: str | None = None
    date: str | None = Field(default=None, description="ISO-8601 creation timestamp.")


class SaleOut(SaleBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    date: str


class ProductList(BaseModel):
    products: list[ProductOut]


class ProductEnvelope(BaseModel):
    product: ProductOut


class SaleList(BaseModel):
    sales: list[SaleOut]


class DeleteResult(BaseModel):
    deleted: int


class ErrorBody(BaseModel):
    error: str


class ReportRequest(CamelModel):
    start_date: dt.date
    end_date: dt.date
    sales_data: str = Field(..., description="JSON encoded array of sales.")


class ReportResponse(CamelModel):
    report_summary: str


class HealthStatus(BaseModel):
    status: Literal["ok"] = "ok"
    environment: str


__all__ = [
    "ProductCreate",
    "ProductUpdate",
    "ProductOut",
    "SaleCreate",
    "SaleOut",
    "ProductList",
    "ProductEnvelope",
    "SaleList",
    "DeleteResult",
    "ErrorBody",
    "ReportRequest",
    "ReportResponse",
    "HealthStatus",
]
