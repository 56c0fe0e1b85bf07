from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple, Union

import api.resources as resources
from db import models, store
from utils.logger import get_logger

_logger = get_logger(__name__)

LineKey = Tuple[str, Optional[str], Optional[str]]  # (product id, size, color)


def line_key(
    product_id: str, size: Optional[str] = None, color: Optional[str] = None
) -> LineKey:
    return (str(product_id), size, color)


def dump_cart(items: List[models.CartItem]) -> str:
    return json.dumps([item.to_json() for item in items])


def parse_cart(blob: Optional[str]) -> List[models.CartItem]:
    """
    Deserialize a stored cart. Missing or malformed blobs give an empty cart;
    lines with a non-positive quantity are dropped.
    """
    if not blob:
        return []
    try:
        raw = json.loads(blob)
        if not isinstance(raw, list):
            raise ValueError("cart blob is not a list")
        items = [models.CartItem.from_json(entry) for entry in raw]
    except (ValueError, TypeError, KeyError) as e:
        _logger.warning(f"Discarding malformed stored cart: {e}")
        return []
    return [item for item in items if item.quantity > 0]


class Cart:
    """
    Shopping cart keyed by (product id, size, color).

    Every mutation is applied to memory before the first await, so callers
    never observe a half-applied change, and is then written through to the
    local store. Writes are serialized; the last write always holds the
    latest state.
    """

    def __init__(self, items: Optional[List[models.CartItem]] = None, kv=store):
        self._lines: Dict[LineKey, models.CartItem] = {}
        for item in items or []:
            if item.quantity > 0:
                self._lines[item.key] = item
        self._kv = kv
        self._write_lock = asyncio.Lock()

    @classmethod
    async def load(cls, kv=store) -> Cart:
        blob = await kv.get_item(store.CART_KEY)
        cart = cls(parse_cart(blob), kv=kv)
        _logger.debug(f"Cart loaded with {len(cart)} line(s).")
        return cart

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self):
        return iter(list(self._lines.values()))

    @property
    def items(self) -> List[models.CartItem]:
        return list(self._lines.values())

    def get(self, key: Union[LineKey, str]) -> Optional[models.CartItem]:
        return self._lines.get(self._resolve(key))

    @staticmethod
    def _resolve(key: Union[LineKey, str]) -> LineKey:
        # a bare product id addresses the line without size/color
        if isinstance(key, str):
            return line_key(key)
        return line_key(*key)

    async def _persist(self) -> None:
        async with self._write_lock:
            await self._kv.set_item(store.CART_KEY, dump_cart(self.items))

    # ---------------------------
    # Mutations
    # ---------------------------

    async def add_to_cart(
        self,
        product: models.Product,
        size: Optional[str] = None,
        color: Optional[str] = None,
        quantity: int = 1,
    ) -> models.CartItem:
        """Increment the matching line by quantity, or insert it with that quantity."""
        if quantity <= 0:
            raise ValueError(f"Quantity must be positive: {quantity}")
        key = line_key(product.id, size, color)
        existing = self._lines.get(key)
        if existing:
            item = models.CartItem(
                product_id=existing.product_id,
                name=existing.name,
                price=existing.price,
                quantity=existing.quantity + quantity,
                selected_size=size,
                selected_color=color,
            )
        else:
            item = models.CartItem.from_product(product, quantity, size, color)
        self._lines[key] = item
        await self._persist()
        return item

    async def update_quantity(self, key: Union[LineKey, str], quantity: int) -> None:
        """Set the quantity; zero or negative removes the line. Unknown keys are ignored."""
        key = self._resolve(key)
        existing = self._lines.get(key)
        if existing is None:
            return
        if quantity <= 0:
            del self._lines[key]
        else:
            self._lines[key] = models.CartItem(
                product_id=existing.product_id,
                name=existing.name,
                price=existing.price,
                quantity=int(quantity),
                selected_size=existing.selected_size,
                selected_color=existing.selected_color,
            )
        await self._persist()

    async def remove_from_cart(self, key: Union[LineKey, str]) -> None:
        self._lines.pop(self._resolve(key), None)
        await self._persist()

    async def clear_cart(self) -> None:
        self._lines.clear()
        await self._persist()

    # ---------------------------
    # Derived values
    # ---------------------------

    def get_cart_count(self) -> int:
        return sum(item.quantity for item in self._lines.values())

    def get_cart_total(self) -> int:
        """Total in cents."""
        return sum(item.price * item.quantity for item in self._lines.values())


async def place_order(
    cart: Cart, user_id: str, shipping_info: Dict[str, str]
) -> models.Order:
    """
    Create an order and its items from the cart, then empty the cart.

    Item prices are the cart line snapshots and stay fixed on the order.
    If any request fails the cart is left untouched and ApiError propagates.
    """
    lines = cart.items
    if not lines:
        raise ValueError("Cannot place an order with an empty cart.")

    order = await resources.create_order(
        {
            "userId": user_id,
            "orderDate": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "status": "placed",
            "total": cart.get_cart_total(),
            "shippingInfo": dict(shipping_info),
        }
    )
    await asyncio.gather(
        *(
            resources.create_order_item(
                {
                    "orderId": order.id,
                    "productId": item.product_id,
                    "quantity": item.quantity,
                    "priceAtPurchase": item.price,
                    "selectedSize": item.selected_size,
                    "selectedColor": item.selected_color,
                }
            )
            for item in lines
        )
    )
    await cart.clear_cart()
    _logger.info(f"Order {order.id} placed with {len(lines)} line(s).")
    return order
