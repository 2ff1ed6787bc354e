"""Domain models for mk_catalog — pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Product:
    id: str
    seller_id: str
    title: str
    price_cents: int
    stock: int
    min_order_quantity: int = 1  # > 1 for wholesale listings
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
