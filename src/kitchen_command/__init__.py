"""Kitchen Command inventory package."""
from __future__ import annotations

from .inventory import InventoryStateManager, OperationResult, SaleError, SaleResult
from .records import Product, Sale

__all__ = [
    "InventoryStateManager",
    "OperationResult",
    "Product",
    "Sale",
    "SaleError",
    "SaleResult",
]
