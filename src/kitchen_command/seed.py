"""Built-in catalog used when neither the record store nor the snapshot is available."""
from __future__ import annotations

from typing import Any, Dict, List

SEED_PRODUCTS: List[Dict[str, Any]] = [
    {
        "id": "prod_001",
        "name": "Chef's Knife",
        "description": "High-carbon stainless steel 8-inch blade.",
        "stock": 50,
        "price": 79.99,
    },
    {
        "id": "prod_002",
        "name": "Cast Iron Skillet",
        "description": "12-inch pre-seasoned skillet for even heating.",
        "stock": 30,
        "price": 45.50,
    },
    {
        "id": "prod_003",
        "name": "Digital Kitchen Scale",
        "description": "Measures up to 11lbs with tare function.",
        "stock": 75,
        "price": 25.00,
    },
    {
        "id": "prod_004",
        "name": "Silicone Spatula Set",
        "description": "Set of 4 heat-resistant spatulas.",
        "stock": 120,
        "price": 19.99,
    },
    {
        "id": "prod_005",
        "name": "Non-stick Frying Pan",
        "description": "10-inch eco-friendly non-stick coating.",
        "stock": 40,
        "price": 35.00,
    },
    {
        "id": "prod_006",
        "name": "Stainless Steel Whisk",
        "description": "10-inch balloon whisk for mixing and aerating.",
        "stock": 90,
        "price": 9.99,
    },
    {
        "id": "prod_007",
        "name": "Bamboo Cutting Board Set",
        "description": "Set of 3 boards in different sizes.",
        "stock": 60,
        "price": 29.99,
    },
]

__all__ = ["SEED_PRODUCTS"]
