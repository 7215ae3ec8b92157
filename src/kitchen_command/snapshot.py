"""Local snapshot of the product catalog, used as an offline fallback."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from .records import Product

logger = logging.getLogger(__name__)


class LocalSnapshotCache:
    """Persists the product list to a single JSON file slot.

    The in-memory state stays authoritative: read failures yield ``None`` and
    write failures are logged, never raised.
    """

    def __init__(self, storage_path: str | Path) -> None:
        self.storage_path = Path(storage_path)

    def load(self) -> Optional[List[Product]]:
        try:
            raw = self.storage_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Failed to read product snapshot %s: %s", self.storage_path, exc)
            return None
        try:
            payload = json.loads(raw)
            if not isinstance(payload, list):
                raise ValueError("snapshot is not a list")
            return [Product.from_record(record) for record in payload]
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Ignoring corrupt product snapshot %s: %s", self.storage_path, exc)
            return None

    def save(self, products: Iterable[Product]) -> bool:
        try:
            payload = json.dumps(
                [product.to_dict() for product in products], indent=2, ensure_ascii=False
            )
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self.storage_path.with_suffix(".tmp")
            temp_path.write_text(payload, encoding="utf-8")
            temp_path.replace(self.storage_path)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Failed to save product snapshot %s: %s", self.storage_path, exc)
            return False
        return True


__all__ = ["LocalSnapshotCache"]
