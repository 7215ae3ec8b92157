"""Inventory state manager: the in-memory catalog and sales ledger.

The manager owns the canonical product and sale collections for its lifetime.
Mutations are applied to memory first; the record store and the local snapshot
are synchronization targets, reconciled per operation:

* ``add_product`` waits for the record store and rolls back on failure.
* ``update_product_stock`` and ``record_sale`` never roll back; their writes go
  through the :class:`~kitchen_command.sync.SyncOutbox`.
* ``delete_sale`` only removes the sale once the record store confirms.
* ``remove_product`` cascades locally at once and reports remote failures.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import InitVar, dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Awaitable, List, Mapping, Optional, Sequence

from .client import FailureKind, RecordStoreClient, StoreResult
from .config import Settings
from .exceptions import RecordStoreUnavailable
from .records import Product, Sale, iso_now
from .seed import SEED_PRODUCTS
from .snapshot import LocalSnapshotCache
from .sync import PendingSync, SyncAction, SyncOutbox

logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = "tmp_"


def _is_temporary(product_id: str) -> bool:
    return product_id.startswith(TEMP_ID_PREFIX)


class ManagerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


class SaleError(str, Enum):
    PRODUCT_NOT_FOUND = "ProductNotFound"
    INSUFFICIENT_STOCK = "InsufficientStock"
    INVALID_QUANTITY = "InvalidQuantity"


@dataclass(frozen=True)
class SaleResult:
    success: bool
    message: str
    error: Optional[SaleError] = None
    sale: Optional[Sale] = None


@dataclass(frozen=True)
class OperationResult:
    success: bool
    message: str = ""
    product: Optional[Product] = None


@dataclass
class InventoryStateManager:
    """Owns products and sales and keeps the record store and snapshot in step."""

    client: RecordStoreClient
    snapshot: LocalSnapshotCache
    sync_outbox: InitVar[Optional[SyncOutbox]] = None
    seed: Sequence[Mapping[str, Any]] = field(default_factory=lambda: SEED_PRODUCTS)
    low_stock_threshold: int = 10
    _products: List[Product] = field(default_factory=list, init=False)
    _sales: List[Sale] = field(default_factory=list, init=False)
    _state: ManagerState = field(default=ManagerState.UNINITIALIZED, init=False)
    _ready: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    outbox: SyncOutbox = field(init=False)

    def __post_init__(self, sync_outbox: Optional[SyncOutbox]) -> None:
        self.outbox = sync_outbox if sync_outbox is not None else SyncOutbox(self.client)

    @classmethod
    def from_settings(cls, settings: Settings) -> "InventoryStateManager":
        client = RecordStoreClient.from_settings(settings)
        outbox = SyncOutbox(
            client,
            max_attempts=settings.sync_max_attempts,
            base_delay=settings.sync_base_delay,
            max_delay=settings.sync_max_delay,
        )
        return cls(
            client=client,
            snapshot=LocalSnapshotCache(settings.snapshot_path),
            sync_outbox=outbox,
            low_stock_threshold=settings.low_stock_threshold,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def state(self) -> ManagerState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is ManagerState.READY

    async def initialize(self) -> None:
        """Load products and sales. Later calls wait for the first load."""

        if self._state is not ManagerState.UNINITIALIZED:
            await self._ready.wait()
            return
        self._state = ManagerState.LOADING
        products, sales = await asyncio.gather(self._load_products(), self._load_sales())
        self._products = products
        self._sales = sales
        self._state = ManagerState.READY
        self._ready.set()
        logger.info("Inventory ready with %d products and %d sales", len(products), len(sales))

    async def _load_products(self) -> List[Product]:
        result = await self._guarded(self.client.list_products())
        if result.ok and result.value is not None:
            self.snapshot.save(result.value)
            return list(result.value)
        logger.warning("Loading products from the record store failed: %s", result.error)

        cached = self.snapshot.load()
        if cached is not None:
            logger.info("Using %d products from the local snapshot", len(cached))
            return cached
        products = [Product.from_record(record) for record in self.seed]
        logger.info("Using the built-in seed catalog (%d products)", len(products))
        self.snapshot.save(products)
        return products

    async def _load_sales(self) -> List[Sale]:
        result = await self._guarded(self.client.list_sales())
        if not result.ok or result.value is None:
            logger.warning("Loading sales from the record store failed: %s", result.error)
            return []
        return sorted(result.value, key=lambda sale: sale.date, reverse=True)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def products(self) -> List[Product]:
        return [replace(product) for product in self._products]

    @property
    def sales(self) -> List[Sale]:
        return [replace(sale) for sale in self._sales]

    @property
    def pending_syncs(self) -> List[PendingSync]:
        return self.outbox.pending

    def get_product(self, product_id: str) -> Optional[Product]:
        product = self._find_product(product_id)
        return None if product is None else replace(product)

    def search_products(self, term: str) -> List[Product]:
        needle = term.strip().lower()
        return [
            replace(product)
            for product in self._products
            if needle in product.name.lower()
        ]

    def low_stock_products(self, threshold: Optional[int] = None) -> List[Product]:
        limit = self.low_stock_threshold if threshold is None else threshold
        return [replace(product) for product in self._products if product.stock <= limit]

    def sales_between(self, start: date, end: date) -> List[Sale]:
        return [replace(sale) for sale in self._sales if sale.falls_within(start, end)]

    async def flush(self) -> None:
        """Wait for queued background writes to be delivered or given up on."""

        await self.outbox.flush()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    async def add_product(self, draft: Mapping[str, Any]) -> OperationResult:
        temporary_id = f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"
        try:
            product = Product.from_record({**draft, "id": temporary_id})
        except (KeyError, TypeError, ValueError) as exc:
            return OperationResult(False, f"Invalid product: {exc}")

        self._products.append(product)
        self.outbox.hold(temporary_id)

        sent = self._editable_fields(product)
        result = await self._guarded(self.client.create_product(sent))

        if not result.ok or result.value is None:
            logger.error("Failed to create product %r: %s", product.name, result.error)
            self._products = [p for p in self._products if p.id != temporary_id]
            self._sales = [s for s in self._sales if s.product_id != temporary_id]
            self.outbox.discard(temporary_id)
            return OperationResult(False, result.error or "Failed to add product")

        confirmed = result.value
        current = self._find_product(temporary_id)
        if current is None:
            # Removed locally while the create was in flight.
            self.outbox.discard(temporary_id)
            await self._guarded(self.client.delete_product(confirmed.id))
            return OperationResult(False, "Product was removed before it was confirmed")

        current.id = confirmed.id
        # Local edits made while the create was in flight win; held syncs push them.
        if self._editable_fields(current) == sent:
            current.name = confirmed.name
            current.description = confirmed.description
            current.price = confirmed.price
            current.stock = confirmed.stock
        for sale in self._sales:
            if sale.product_id == temporary_id:
                sale.product_id = confirmed.id
        self.outbox.release(temporary_id, confirmed.id)
        self._save_snapshot()
        return OperationResult(True, "Product added successfully", replace(current))

    def update_product_stock(self, product_id: str, new_stock: int) -> Optional[Product]:
        product = self._find_product(product_id)
        if product is None:
            logger.warning("Stock update for unknown product %s ignored", product_id)
            return None
        product.stock = max(0, int(new_stock))
        self._save_snapshot()
        self.outbox.submit(SyncAction.UPDATE_PRODUCT, product.id, {"stock": product.stock})
        return replace(product)

    def update_product_details(
        self,
        product_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        price: Optional[float] = None,
    ) -> OperationResult:
        """Edit catalog fields. Past sales keep the name and amount they were recorded with."""

        product = self._find_product(product_id)
        if product is None:
            return OperationResult(False, "Product not found")
        changes: dict = {}
        if name is not None:
            if not name.strip():
                return OperationResult(False, "Product name cannot be empty", replace(product))
            changes["name"] = name.strip()
        if description is not None:
            changes["description"] = description
        if price is not None:
            if price < 0:
                return OperationResult(False, "Price cannot be negative", replace(product))
            changes["price"] = float(price)
        if not changes:
            return OperationResult(True, "Nothing to update", replace(product))

        for key, value in changes.items():
            setattr(product, key, value)
        self._save_snapshot()
        self.outbox.submit(SyncAction.UPDATE_PRODUCT, product.id, changes)
        return OperationResult(True, "Product updated", replace(product))

    def record_sale(self, product_id: str, quantity: int) -> SaleResult:
        if quantity <= 0:
            return SaleResult(False, "Quantity must be positive", SaleError.INVALID_QUANTITY)
        product = self._find_product(product_id)
        if product is None:
            return SaleResult(False, "Product not found", SaleError.PRODUCT_NOT_FOUND)
        if product.stock < quantity:
            return SaleResult(False, "Not enough stock", SaleError.INSUFFICIENT_STOCK)

        sale = Sale(
            id=f"sale_{uuid.uuid4().hex}",
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            total_amount=round(product.price * quantity, 2),
            date=iso_now(),
        )
        self.update_product_stock(product.id, product.stock - quantity)
        self._sales.insert(0, sale)
        self.outbox.submit(SyncAction.CREATE_SALE, product.id, sale.to_dict())
        return SaleResult(True, "Sale recorded successfully", sale=replace(sale))

    async def delete_sale(self, sale_id: str) -> bool:
        if self.outbox.cancel_sale(sale_id):
            self._sales = [sale for sale in self._sales if sale.id != sale_id]
            return True

        result = await self._guarded(self.client.delete_sale(sale_id))
        if not result.ok:
            logger.error("Failed to delete sale %s: %s", sale_id, result.error)
            return False
        self._sales = [sale for sale in self._sales if sale.id != sale_id]
        return True

    async def remove_product(self, product_id: str) -> OperationResult:
        product = self._find_product(product_id)
        if product is None:
            return OperationResult(False, "Product not found")

        self._products = [p for p in self._products if p.id != product_id]
        self._sales = [s for s in self._sales if s.product_id != product_id]
        self._save_snapshot()
        self.outbox.discard(product_id)
        if _is_temporary(product_id):
            return OperationResult(True, "Product removed", product)

        sales_result = await self._guarded(self.client.delete_sales_for_product(product_id))
        if not sales_result.ok:
            logger.error(
                "Failed to delete sales for product %s: %s", product_id, sales_result.error
            )
            return OperationResult(False, sales_result.error or "Failed to delete sales", product)

        product_result = await self._guarded(self.client.delete_product(product_id))
        if not product_result.ok:
            logger.error("Failed to delete product %s: %s", product_id, product_result.error)
            return OperationResult(False, product_result.error or "Failed to delete product", product)
        return OperationResult(True, "Product removed", product)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _find_product(self, product_id: str) -> Optional[Product]:
        for product in self._products:
            if product.id == product_id:
                return product
        return None

    @staticmethod
    def _editable_fields(product: Product) -> dict:
        return {
            "name": product.name,
            "description": product.description,
            "price": product.price,
            "stock": product.stock,
        }

    def _save_snapshot(self) -> None:
        self.snapshot.save(p for p in self._products if not _is_temporary(p.id))

    @staticmethod
    async def _guarded(call: Awaitable[StoreResult[Any]]) -> StoreResult[Any]:
        try:
            return await call
        except RecordStoreUnavailable as exc:
            logger.warning("Record store unavailable: %s", exc)
            return StoreResult.failure(str(exc), FailureKind.UNAVAILABLE)


__all__ = [
    "InventoryStateManager",
    "ManagerState",
    "OperationResult",
    "SaleError",
    "SaleResult",
    "TEMP_ID_PREFIX",
]
