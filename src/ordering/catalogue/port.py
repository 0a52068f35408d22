"""Product catalogue port.

Ordering never owns products. It reads a point-in-time snapshot of a
listing when a buyer adds it to the cart and again at checkout.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProductSnapshot:
    product_id: str
    seller_id: str
    title: str
    price: float
    condition: str | None = None
    is_active: bool = True


class ProductCatalogue(ABC):
    @abstractmethod
    def get_product(self, product_id: str) -> ProductSnapshot | None:
        """Current state of a listing, or None if it does not exist."""
        ...
