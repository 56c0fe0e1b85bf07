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

import api.resources as resources  # noqa: E402
from api import transport  # noqa: E402
from api.mock_server import MockBackend  # noqa: E402
from api.transport import ApiError, NotFoundError  # noqa: E402
from db import database as db_database  # noqa: E402
from db import store  # noqa: E402
from db.models import NOTIFICATION_DEFAULTS, User  # noqa: E402
from utils import account  # noqa: E402


class ResourcesTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        db_database.DB_PATH = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database._initialized = False
        self.backend = MockBackend()
        transport.use_transport(self.backend.transport())

    def tearDown(self):
        transport.use_transport(None)
        self.temp_dir.cleanup()

    # ---------- Transport ----------

    async def test_bearer_header_only_with_token(self):
        await resources.get_categories()
        self.assertNotIn("Authorization", self.backend.requests[-1].headers)

        await store.set_token("abc123")
        await resources.get_categories()
        self.assertEqual(self.backend.requests[-1].headers["Authorization"], "Bearer abc123")

        await store.clear_token()
        await resources.get_categories()
        self.assertNotIn("Authorization", self.backend.requests[-1].headers)

    async def test_errors_are_wrapped(self):
        def broken(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport.use_transport(httpx.MockTransport(broken))
        with self.assertRaises(ApiError) as ctx:
            await resources.get_products()
        self.assertIsNone(ctx.exception.status)

        transport.use_transport(self.backend.transport())
        with self.assertRaises(NotFoundError):
            await resources.update_product("999", {"stock": 1})

    async def test_malformed_payload_is_api_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/products":
                return httpx.Response(200, json={"oops": 1})
            return httpx.Response(
                200,
                json=[{"id": "1", "userId": "1", "total": 100, "status": "placed", "orderDate": "yesterday"}],
            )

        transport.use_transport(httpx.MockTransport(handler))
        with self.assertRaises(ApiError) as ctx:
            await resources.get_products()
        self.assertEqual(str(ctx.exception), "Malformed response")
        with self.assertRaises(ApiError):
            await resources.get_orders_by_user("1")

    async def test_get_by_id_returns_none_when_missing(self):
        self.assertIsNone(await resources.get_product("999"))
        self.assertIsNone(await resources.get_user("999"))
        self.assertIsNone(await resources.get_order("999"))
        self.assertIsNone(await resources.get_inquiry("999"))

        product = await resources.get_product("1")
        self.assertEqual(product.name, "Silk Wrap Blouse")
        self.assertEqual(product.price, 7500)

    # ---------- Catalog ----------

    async def test_products_by_category(self):
        dresses = await resources.get_products_by_category("2")
        self.assertEqual(sorted(p.id for p in dresses), ["2", "8"])
        self.assertEqual((await resources.get_category("2")).name, "Dresses")
        self.assertEqual(len(await resources.get_categories()), 7)

    # ---------- Users ----------

    async def test_user_records_hide_secrets(self):
        created = await resources.create_user(
            {"email": "new@example.com", "password": "hunter22", "role": "customer", "name": "New"}
        )
        self.assertIsInstance(created, User)
        raw = next(u for u in self.backend.users if u["id"] == created.id)
        self.assertNotIn("password", raw)
        self.assertNotEqual(raw["passwordHash"], "hunter22")
        for req_user in await resources.get_users():
            self.assertIsInstance(req_user, User)

        with self.assertRaises(ApiError) as ctx:
            await resources.create_user({"email": "new@example.com", "password": "x"})
        self.assertEqual(ctx.exception.status, 409)

        renamed = await resources.patch_user(created.id, {"name": "Renamed"})
        self.assertEqual(renamed.name, "Renamed")
        await resources.delete_user(created.id)
        self.assertIsNone(await resources.get_user(created.id))

    # ---------- Orders ----------

    async def test_orders_by_user_and_items(self):
        orders = await resources.get_orders_by_user("1")
        self.assertEqual([o.id for o in orders], ["1"])
        self.assertEqual(orders[0].total, 20300)
        items = await resources.get_order_items("1")
        self.assertEqual(sum(i.line_total for i in items), 20300)
        self.assertEqual(await resources.get_orders_by_user("2"), [])

        shipped = await resources.update_order_status("1", "shipped")
        self.assertEqual(shipped.status, "shipped")

    # ---------- Account ----------

    async def test_save_profile_patches_or_creates(self):
        customer = User("1", "customer@example.com", "customer", "Clara Silva")
        profile = await account.save_profile(
            customer, {"name": "Clara S.", "phone": "123", "website": "ignored.example"}
        )
        self.assertEqual(profile.id, "1")
        self.assertEqual(profile.phone, "123")
        self.assertEqual(profile.website, "")
        self.assertEqual((await resources.get_user("1")).name, "Clara S.")

        self.backend.profiles.clear()
        brand = User("2", "brand@example.com", "brand", "Atelier Aurora")
        profile = await account.save_profile(
            brand, {"name": "Atelier Aurora", "website": "aurora.example", "companySize": "11-50"}
        )
        self.assertEqual(profile.user_id, "2")
        self.assertEqual(profile.website, "aurora.example")
        self.assertEqual(profile.company_size, "11-50")
        self.assertEqual(len(self.backend.profiles), 1)

    async def test_notifications_defaults_and_save(self):
        prefs = await account.load_notifications("1")
        self.assertEqual(prefs, NOTIFICATION_DEFAULTS)

        saved = await account.save_notifications("1", {"emailMarketing": True, "bogus": True})
        self.assertTrue(saved["emailMarketing"])
        self.assertNotIn("bogus", saved)
        self.assertTrue((await account.load_notifications("1"))["emailMarketing"])

        merged = account.merge_notifications({"smsOrders": 1, "unknown": False})
        self.assertIs(merged["smsOrders"], True)
        self.assertNotIn("unknown", merged)

    async def test_change_password(self):
        with self.assertRaises(account.PasswordChangeError):
            await account.change_password("1", "demo", "longenough", "different1")
        with self.assertRaises(account.PasswordChangeError):
            await account.change_password("1", "demo", "short", "short")
        # rejected client-side, nothing was sent
        self.assertEqual(self.backend.requests, [])

        # without a verified session the backend refuses
        with self.assertRaises(ApiError) as ctx:
            await account.change_password("1", "demo", "newsecret1", "newsecret1")
        self.assertEqual(ctx.exception.status, 401)

        token, _ = await resources.login("customer@example.com", "demo")
        await store.set_token(token)
        with self.assertRaises(ApiError) as ctx:
            await account.change_password("1", "wrong", "newsecret1", "newsecret1")
        self.assertEqual(ctx.exception.status, 403)

        await account.change_password("1", "demo", "newsecret1", "newsecret1")
        await resources.login("customer@example.com", "newsecret1")


if __name__ == "__main__":
    unittest.main()
