"""
Local shopping cart

Line items are keyed by (product id, size): adding the same product in the
same size merges quantities. The cart is persisted to a store under "cart".
"""
import logging
from typing import List, Optional

from pydantic import ValidationError

from app.client.storage import CART_KEY, MemoryStore
from app.domain.user import CartItem

logger = logging.getLogger(__name__)


class Cart:
    """Browser-side cart persisted to a key-value store"""

    def __init__(self, store: MemoryStore = None):
        self.store = store if store is not None else MemoryStore()
        self.items: List[CartItem] = self._load()

    def _load(self) -> List[CartItem]:
        raw = self.store.get(CART_KEY) or []
        try:
            return [CartItem.model_validate(item) for item in raw]
        except ValidationError as e:
            logger.error(f"Discarding unreadable stored cart: {e}")
            return []

    def _save(self) -> None:
        self.store.set(CART_KEY, [item.to_dict() for item in self.items])

    def _find(self, product_id: str, size: Optional[str]) -> Optional[int]:
        for index, item in enumerate(self.items):
            if item.id == product_id and item.size == size:
                return index
        return None

    def add(self, item: CartItem, quantity: int = 1) -> None:
        index = self._find(item.id, item.size)
        if index is not None:
            existing = self.items[index]
            self.items[index] = existing.model_copy(update={"quantity": existing.quantity + quantity})
        else:
            self.items.append(item.model_copy(update={"quantity": quantity}))
        self._save()

    def remove(self, product_id: str, size: Optional[str] = None) -> None:
        self.items = [item for item in self.items if not (item.id == product_id and item.size == size)]
        self._save()

    def set_quantity(self, product_id: str, quantity: int, size: Optional[str] = None) -> None:
        """Set a line's quantity; zero or less removes the line"""
        if quantity <= 0:
            self.remove(product_id, size)
            return
        index = self._find(product_id, size)
        if index is not None:
            self.items[index] = self.items[index].model_copy(update={"quantity": quantity})
            self._save()

    def replace(self, items: List[CartItem]) -> None:
        self.items = list(items)
        self._save()

    def clear(self) -> None:
        self.items = []
        self._save()

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_price(self) -> float:
        return round(sum(item.price * item.quantity for item in self.items), 2)

    def __len__(self) -> int:
        return len(self.items)
