# salesdesk/services/cart/selection_store.py

from decimal import Decimal

from salesdesk.constants.cart import MAX_LINE_QUANTITY
from salesdesk.core.exceptions import ValidationError
from salesdesk.services.cart.pricing import CartLine
from salesdesk.utils.decimal_utils import to_decimal


def _check_ceiling(item_id: int, quantity: int) -> None:
    if quantity > MAX_LINE_QUANTITY:
        raise ValidationError(
            "Quantity exceeds the per-line maximum",
            {"item_id": item_id, "quantity": quantity, "max": MAX_LINE_QUANTITY},
        )


class SelectionStore:
    """
    The cart: item id -> quantity, plus the unit price captured in the
    active currency when the item was picked. Quantities are always >= 1;
    an item is either present or absent, never present at zero.

    Selection does not depend on the filters in force, so hiding an item
    from view never drops it from here.
    """

    def __init__(self):
        self._quantities: dict[int, int] = {}
        self._prices: dict[int, Decimal] = {}

    def __contains__(self, item_id) -> bool:
        return item_id in self._quantities

    def __len__(self) -> int:
        return len(self._quantities)

    def __iter__(self):
        return iter(list(self._quantities))

    @property
    def is_empty(self) -> bool:
        return not self._quantities

    def is_selected(self, item_id: int) -> bool:
        return item_id in self._quantities

    def quantity(self, item_id: int) -> int:
        return self._quantities.get(item_id, 0)

    def unit_price(self, item_id: int) -> Decimal | None:
        return self._prices.get(item_id)

    # -------------------------
    # MUTATIONS
    # -------------------------
    def select(self, item_id: int, unit_price) -> int:
        """Add with quantity 1. Re-selecting keeps the existing quantity."""
        if item_id not in self._quantities:
            self._quantities[item_id] = 1
            self._prices[item_id] = to_decimal(unit_price)
        return self._quantities[item_id]

    def deselect(self, item_id: int) -> bool:
        self._prices.pop(item_id, None)
        return self._quantities.pop(item_id, None) is not None

    def adjust_quantity(self, item_id: int, delta: int) -> int:
        """Clamp to 1 on the way down; removal is an explicit deselect."""
        if item_id not in self._quantities:
            raise ValidationError("Item is not in the cart", {"item_id": item_id})
        quantity = max(1, self._quantities[item_id] + int(delta))
        _check_ceiling(item_id, quantity)
        self._quantities[item_id] = quantity
        return self._quantities[item_id]

    def set_line(self, item_id: int, quantity: int, unit_price) -> None:
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1", {"item_id": item_id, "quantity": quantity})
        _check_ceiling(item_id, quantity)
        self._quantities[item_id] = int(quantity)
        self._prices[item_id] = to_decimal(unit_price)

    def clear(self) -> None:
        self._quantities.clear()
        self._prices.clear()

    # -------------------------
    # READS
    # -------------------------
    def items(self) -> dict[int, int]:
        return dict(self._quantities)

    def lines(self) -> list[CartLine]:
        return [
            CartLine(item_id=item_id, quantity=qty, unit_price=self._prices[item_id])
            for item_id, qty in self._quantities.items()
        ]
