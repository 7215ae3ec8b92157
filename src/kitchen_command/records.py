"""In-memory product and sale records shared by the client and the state manager."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Mapping, Optional


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def iso_now() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""

    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _pick(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in record:
            return record[key]
    raise KeyError(keys[0])


@dataclass
class Product:
    """A catalog entry with its on-hand stock."""

    id: str
    name: str
    description: str = ""
    price: float = 0.0
    stock: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "stock": self.stock,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Product":
        identifier = str(record["id"]).strip()
        name = str(record["name"]).strip()
        if not identifier or not name:
            raise ValueError("Product records need an id and a name")
        price = float(record.get("price") or 0)
        if price < 0:
            raise ValueError("Product price cannot be negative")
        stock = int(record.get("stock") or 0)
        if stock < 0:
            raise ValueError("Product stock cannot be negative")
        description = record.get("description")
        return cls(
            id=identifier,
            name=name,
            description="" if description is None else str(description),
            price=price,
            stock=stock,
        )


@dataclass
class Sale:
    """A recorded sale. Name and amount are frozen at the time of sale."""

    id: str
    product_id: str
    product_name: str
    quantity: int
    total_amount: float
    date: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "totalAmount": self.total_amount,
            "date": self.date,
        }

    @property
    def timestamp(self) -> Optional[datetime]:
        return parse_timestamp(self.date)

    def falls_within(self, start: date, end: date) -> bool:
        """Whether the sale happened between ``start`` and ``end``, both days included."""

        timestamp = self.timestamp
        if timestamp is None:
            return False
        day = timestamp.astimezone(timezone.utc).date()
        return start <= day <= end

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Sale":
        quantity = int(record["quantity"])
        if quantity <= 0:
            raise ValueError("Sale quantity must be positive")
        return cls(
            id=str(record["id"]),
            product_id=str(_pick(record, "productId", "product_id")),
            product_name=str(_pick(record, "productName", "product_name")),
            quantity=quantity,
            total_amount=float(_pick(record, "totalAmount", "total_amount")),
            date=str(record["date"]),
        )


__all__ = ["Product", "Sale", "iso_now", "parse_timestamp"]
