import json
import os
import sys
import tempfile
import unittest

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

import httpx  # noqa: E402

from api import transport  # noqa: E402
from api.mock_server import MockBackend  # noqa: E402
from api.transport import ApiError  # noqa: E402
from db import database as db_database  # noqa: E402
from db import store  # noqa: E402
from db.models import CartItem, Product  # noqa: E402
from utils.cart import Cart, dump_cart, parse_cart, place_order  # noqa: E402


def make_product(pid: str, price: int, name: str = "") -> Product:
    return Product(
        id=pid,
        category_id="1",
        name=name or f"Product {pid}",
        price=price,
        stock=10,
    )


class CartTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        # Point the store to a temporary file and force re-initialization
        self.temp_dir = tempfile.TemporaryDirectory()
        db_database.DB_PATH = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database._initialized = False
        self.backend = MockBackend()
        transport.use_transport(self.backend.transport())

    def tearDown(self):
        transport.use_transport(None)
        self.temp_dir.cleanup()

    # ---------- Adding ----------

    async def test_repeated_add_keeps_one_line(self):
        cart = Cart()
        blouse = make_product("1", 7500)
        for n in range(1, 6):
            await cart.add_to_cart(blouse)
            self.assertEqual(len(cart), 1)
            self.assertEqual(cart.get("1").quantity, n)
        self.assertEqual(cart.get_cart_count(), 5)

    async def test_variants_are_separate_lines(self):
        cart = Cart()
        dress = make_product("2", 12800)
        await cart.add_to_cart(dress, "S", "Ivory")
        await cart.add_to_cart(dress, "M", "Ivory")
        await cart.add_to_cart(dress, "S", "Ivory")

        self.assertEqual(len(cart), 2)
        self.assertEqual(cart.get(("2", "S", "Ivory")).quantity, 2)
        self.assertEqual(cart.get(("2", "M", "Ivory")).quantity, 1)
        self.assertIsNone(cart.get("2"))

    async def test_add_with_quantity_writes_once(self):
        writes = []

        class CountingStore:
            async def get_item(self, key):
                return None

            async def set_item(self, key, value):
                writes.append(value)

        cart = Cart(kv=CountingStore())
        scarf = make_product("5", 4500)
        item = await cart.add_to_cart(scarf, "M", "Ivory", quantity=3)
        self.assertEqual(item.quantity, 3)
        self.assertEqual(len(writes), 1)
        self.assertEqual(json.loads(writes[-1])[0]["quantity"], 3)

        await cart.add_to_cart(scarf, "M", "Ivory", quantity=2)
        self.assertEqual(cart.get(("5", "M", "Ivory")).quantity, 5)
        self.assertEqual(len(writes), 2)

        with self.assertRaises(ValueError):
            await cart.add_to_cart(scarf, "M", "Ivory", quantity=0)
        self.assertEqual(len(writes), 2)

    async def test_add_keeps_price_snapshot(self):
        cart = Cart()
        await cart.add_to_cart(make_product("1", 7500))
        # a later price change in the catalog does not touch the line
        await cart.add_to_cart(make_product("1", 9900))
        self.assertEqual(cart.get("1").price, 7500)
        self.assertEqual(cart.get_cart_total(), 15000)

    # ---------- Quantity & removal ----------

    async def test_zero_or_negative_quantity_removes_line(self):
        for qty in (0, -1, -42):
            cart = Cart()
            await cart.add_to_cart(make_product("1", 7500))
            await cart.add_to_cart(make_product("2", 12800))
            await cart.update_quantity("1", qty)
            self.assertIsNone(cart.get("1"))
            self.assertEqual(cart.get_cart_count(), 1)

    async def test_update_quantity_sets_value(self):
        cart = Cart()
        await cart.add_to_cart(make_product("1", 7500), "M", "Gold")
        await cart.update_quantity(("1", "M", "Gold"), 4)
        self.assertEqual(cart.get(("1", "M", "Gold")).quantity, 4)

    async def test_update_unknown_line_is_noop(self):
        cart = Cart()
        await cart.add_to_cart(make_product("1", 7500))
        await cart.update_quantity("999", 3)
        self.assertEqual(cart.get_cart_count(), 1)

    async def test_remove_and_clear(self):
        cart = Cart()
        await cart.add_to_cart(make_product("1", 7500))
        await cart.add_to_cart(make_product("2", 12800))
        await cart.remove_from_cart("1")
        self.assertEqual([i.product_id for i in cart.items], ["2"])
        await cart.remove_from_cart("1")  # already gone
        await cart.clear_cart()
        self.assertEqual(len(cart), 0)
        self.assertEqual(cart.get_cart_total(), 0)

    # ---------- Totals ----------

    async def test_total_is_sum_of_lines(self):
        cart = Cart()
        await cart.add_to_cart(make_product("1", 7500))
        await cart.add_to_cart(make_product("2", 12800))
        await cart.update_quantity("2", 2)
        self.assertEqual(cart.get_cart_total(), 33100)
        self.assertEqual(cart.get_cart_count(), 3)

    # ---------- Persistence ----------

    async def test_serialization_round_trip(self):
        items = [
            CartItem("1", "Silk Wrap Blouse", 7500, 1, "S", "Ivory"),
            CartItem("2", "Midnight Silk Dress", 12800, 2, None, None),
            CartItem("2", "Midnight Silk Dress", 12800, 1, "L", "Midnight"),
        ]
        self.assertEqual(parse_cart(dump_cart(items)), items)

    async def test_cart_persists_to_store(self):
        cart = Cart()
        await cart.add_to_cart(make_product("1", 7500), "XS", "Blush")
        await cart.add_to_cart(make_product("1", 7500), "XS", "Blush")

        reloaded = await Cart.load()
        self.assertEqual(reloaded.items, cart.items)
        raw = json.loads(await store.get_item(store.CART_KEY))
        self.assertEqual(raw[0]["id"], "1")
        self.assertEqual(raw[0]["selectedSize"], "XS")
        self.assertEqual(raw[0]["quantity"], 2)

    async def test_malformed_blob_gives_empty_cart(self):
        for blob in ("not json", '{"id": "1"}', '[{"name": "no id"}]', ""):
            self.assertEqual(parse_cart(blob), [])

        await store.set_item(store.CART_KEY, "{{{")
        cart = await Cart.load()
        self.assertEqual(len(cart), 0)

    async def test_parse_drops_non_positive_lines(self):
        blob = json.dumps(
            [
                {"id": "1", "name": "a", "price": 100, "quantity": 0},
                {"id": "2", "name": "b", "price": 200, "quantity": 3},
            ]
        )
        self.assertEqual([i.product_id for i in parse_cart(blob)], ["2"])

    # ---------- Checkout ----------

    async def test_place_order_snapshots_prices_and_clears(self):
        cart = Cart()
        await cart.add_to_cart(make_product("1", 7500), "M", "Ivory")
        await cart.add_to_cart(make_product("2", 12800))
        await cart.update_quantity("2", 2)

        order = await place_order(cart, "1", {"name": "Clara", "address": "Calle 1"})

        self.assertEqual(order.status, "placed")
        self.assertEqual(order.total, 33100)
        self.assertEqual(len(cart), 0)
        items = [i for i in self.backend.order_items if i["orderId"] == order.id]
        self.assertEqual(
            sorted((i["productId"], i["quantity"], i["priceAtPurchase"]) for i in items),
            [("1", 1, 7500), ("2", 2, 12800)],
        )

    async def test_place_order_failure_keeps_cart(self):
        def failing(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"message": "boom"})

        transport.use_transport(httpx.MockTransport(failing))
        cart = Cart()
        await cart.add_to_cart(make_product("1", 7500))

        with self.assertRaises(ApiError) as ctx:
            await place_order(cart, "1", {"address": "x"})
        self.assertEqual(ctx.exception.status, 500)
        self.assertEqual(cart.get_cart_count(), 1)

    async def test_place_order_rejects_empty_cart(self):
        with self.assertRaises(ValueError):
            await place_order(Cart(), "1", {"address": "x"})


if __name__ == "__main__":
    unittest.main()
