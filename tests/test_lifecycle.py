import asyncio
import os
import sys
import tempfile
import unittest
from datetime import date, datetime, timedelta, timezone

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

import httpx  # noqa: E402

from api import transport  # noqa: E402
from api.mock_server import MockBackend  # noqa: E402
from db import database as db_database  # noqa: E402
from db.models import ServiceInquiry  # noqa: E402
from utils import lifecycle  # noqa: E402
from utils.lifecycle import InquiryFeed, InquiryValidationError  # noqa: E402
from utils.pure import paginate  # noqa: E402

TODAY = date(2026, 2, 10)


def make_inquiry(iid: str, status: str, created: datetime) -> ServiceInquiry:
    return ServiceInquiry(
        id=iid,
        user_id="2",
        description=f"Inquiry {iid}",
        quantity=10,
        deadline=date(2026, 3, 1),
        status=status,
        created_at=created,
    )


def valid_form(**overrides):
    form = {
        "quantity": "50",
        "description": "  Silk scarves with embroidery  ",
        "deadline": (TODAY + timedelta(days=30)).isoformat(),
        "fabrics": "Mulberry",
    }
    form.update(overrides)
    return form


class LifecycleTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        db_database.DB_PATH = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database._initialized = False
        self.backend = MockBackend()
        transport.use_transport(self.backend.transport())

    def tearDown(self):
        transport.use_transport(None)
        self.temp_dir.cleanup()

    # ---------- Pipeline ----------

    def test_pipeline_steps(self):
        self.assertEqual(lifecycle.next_status("pending"), "in_review")
        self.assertEqual(lifecycle.next_status("production"), "completed")
        self.assertIsNone(lifecycle.next_status("completed"))
        self.assertIsNone(lifecycle.next_status("rejected"))
        self.assertTrue(lifecycle.can_transition("approved", "production"))
        self.assertTrue(lifecycle.can_transition("in_review", "rejected"))
        self.assertFalse(lifecycle.can_transition("approved", "completed"))
        self.assertFalse(lifecycle.can_transition("completed", "rejected"))
        self.assertTrue(lifecycle.is_terminal("rejected"))

    # ---------- Filtering, sorting, paging ----------

    def test_pending_group_covers_in_review(self):
        base = datetime(2026, 2, 1, tzinfo=timezone.utc)
        inquiries = lifecycle.sort_newest_first(
            [
                make_inquiry("a", "pending", base + timedelta(days=3)),
                make_inquiry("b", "in_review", base + timedelta(days=2)),
                make_inquiry("c", "approved", base + timedelta(days=1)),
            ]
        )
        result = lifecycle.filter_by_status_group(inquiries, "pending")
        self.assertEqual([i.id for i in result], ["a", "b"])

        self.assertEqual(len(lifecycle.filter_by_status_group(inquiries, "all")), 3)
        self.assertEqual(
            [i.id for i in lifecycle.filter_by_status_group(inquiries, "approved")], ["c"]
        )
        self.assertEqual(lifecycle.filter_by_status_group(inquiries, "rejected"), [])

    def test_sort_newest_first(self):
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        inquiries = [
            make_inquiry("old", "pending", base),
            make_inquiry("new", "pending", base + timedelta(days=9)),
            make_inquiry("mid", "pending", base + timedelta(days=4)),
        ]
        self.assertEqual(
            [i.id for i in lifecycle.sort_newest_first(inquiries)], ["new", "mid", "old"]
        )

    def test_paginate_pages(self):
        items = list(range(6))
        self.assertEqual(paginate(items, 5, 1), [0, 1, 2, 3, 4])
        self.assertEqual(paginate(items, 5, 2), [5])
        self.assertEqual(paginate(items, 5, 3), [])
        self.assertEqual(paginate(items, 5, 0), [0, 1, 2, 3, 4])
        self.assertEqual(paginate([], 5, 1), [])
        with self.assertRaises(ValueError):
            paginate(items, 0, 1)

    def test_stats(self):
        base = datetime(2026, 2, 1, tzinfo=timezone.utc)
        stats = lifecycle.inquiry_stats(
            [
                make_inquiry("1", "pending", base),
                make_inquiry("2", "in_review", base),
                make_inquiry("3", "approved", base),
                make_inquiry("4", "completed", base),
                make_inquiry("5", "rejected", base),
            ]
        )
        self.assertEqual((stats.total, stats.pending, stats.approved, stats.completed), (5, 2, 1, 1))

    # ---------- Validation ----------

    async def test_past_deadline_rejected_before_network(self):
        calls = []

        def spy(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(201, json={})

        transport.use_transport(httpx.MockTransport(spy))
        form = valid_form(deadline=(TODAY - timedelta(days=1)).isoformat())

        with self.assertRaises(InquiryValidationError) as ctx:
            await lifecycle.create_inquiry("2", form, today=TODAY)
        self.assertIn("deadline", ctx.exception.errors)
        self.assertEqual(calls, [])

    def test_field_errors(self):
        with self.assertRaises(InquiryValidationError) as ctx:
            lifecycle.validate_inquiry(
                {"quantity": "0", "description": "   ", "deadline": ""}, today=TODAY
            )
        errors = ctx.exception.errors
        self.assertEqual(errors["quantity"], "Quantity must be a positive whole number.")
        self.assertEqual(errors["description"], "Description is required.")
        self.assertEqual(errors["deadline"], "Deadline is required.")

        with self.assertRaises(InquiryValidationError) as ctx:
            lifecycle.validate_inquiry(valid_form(quantity="abc", deadline="not-a-date"), today=TODAY)
        self.assertEqual(set(ctx.exception.errors), {"quantity", "deadline"})

    def test_deadline_today_is_valid(self):
        draft = lifecycle.validate_inquiry(valid_form(deadline=TODAY.isoformat()), today=TODAY)
        self.assertEqual(draft.deadline, TODAY)
        self.assertEqual(draft.description, "Silk scarves with embroidery")
        self.assertEqual(draft.quantity, 50)

    async def test_create_posts_pending(self):
        created = await lifecycle.create_inquiry("2", valid_form(), today=TODAY)
        self.assertEqual(created.status, "pending")
        self.assertEqual(created.user_id, "2")
        self.assertIsNotNone(created.created_at)

        stored = next(i for i in self.backend.inquiries if i["id"] == created.id)
        self.assertEqual(stored["quantity"], 50)
        self.assertEqual(stored["fabrics"], "Mulberry")

        listed = await lifecycle.list_by_user("2")
        self.assertEqual(listed[0].id, created.id)

    async def test_list_by_user_newest_first(self):
        listed = await lifecycle.list_by_user("2")
        self.assertEqual([i.id for i in listed], ["5", "6", "2", "1", "3", "4"])
        self.assertEqual(await lifecycle.list_by_user("1"), [])

    async def test_update_status_and_cancel(self):
        updated = await lifecycle.update_inquiry_status("5", "in_review")
        self.assertEqual(updated.status, "in_review")
        with self.assertRaises(ValueError):
            await lifecycle.update_inquiry_status("5", "shipped")

        await lifecycle.cancel_inquiry("5")
        self.assertNotIn("5", [i.id for i in await lifecycle.list_by_user("2")])

    # ---------- Feed ----------

    async def test_filter_change_resets_page(self):
        feed = InquiryFeed("2", page_size=2)
        self.assertTrue(await feed.load())
        self.assertEqual(feed.page_count, 3)
        feed.set_page(3)
        self.assertEqual(feed.page, 3)

        feed.set_filter("approved")  # a single match
        self.assertEqual(feed.page, 1)
        self.assertEqual([i.id for i in feed.visible], ["2"])

        feed.set_page(3)
        feed.set_filter("pending")
        self.assertEqual(feed.page, 1)
        self.assertEqual([i.id for i in feed.visible], ["5", "6"])
        # stats are independent of the filter
        self.assertEqual(feed.stats.total, 6)

    async def test_feed_pages_six_inquiries(self):
        feed = InquiryFeed("2", page_size=5)
        await feed.load()
        self.assertEqual(len(feed.visible), 5)
        feed.set_page(2)
        self.assertEqual(len(feed.visible), 1)
        feed.set_page(7)
        self.assertEqual(feed.page, 2)

    async def test_stale_response_is_dropped(self):
        started = asyncio.Event()
        release = asyncio.Event()
        calls = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls == 1:
                started.set()
                await release.wait()
                return httpx.Response(200, json=[self.backend.inquiries[0]])
            release.set()
            return httpx.Response(200, json=self.backend.inquiries[:3])

        transport.use_transport(httpx.MockTransport(handler))
        feed = InquiryFeed("2")

        slow = asyncio.create_task(feed.load())
        await started.wait()
        self.assertTrue(await feed.load())
        self.assertFalse(await slow)
        self.assertEqual(len(feed.inquiries), 3)

    async def test_failed_load_keeps_list(self):
        feed = InquiryFeed("2")
        await feed.load()
        self.assertIsNone(feed.error)

        def failing(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={"message": "unavailable"})

        transport.use_transport(httpx.MockTransport(failing))
        self.assertTrue(await feed.load())
        self.assertIsNotNone(feed.error)
        self.assertEqual(len(feed.inquiries), 6)

        # retry succeeds and clears the error
        transport.use_transport(self.backend.transport())
        await feed.load()
        self.assertIsNone(feed.error)

    async def test_malformed_inquiry_keeps_list(self):
        feed = InquiryFeed("2")
        await feed.load()

        def garbled(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json=[
                    {
                        "id": "9",
                        "userId": "2",
                        "description": "x",
                        "quantity": 1,
                        "deadline": "2026-03-01",
                        "status": "pending",
                        "createdAt": "yesterday",
                    }
                ],
            )

        transport.use_transport(httpx.MockTransport(garbled))
        self.assertTrue(await feed.load())
        self.assertIsNotNone(feed.error)
        self.assertEqual(len(feed.inquiries), 6)

        transport.use_transport(httpx.MockTransport(lambda request: httpx.Response(200, json={"oops": 1})))
        self.assertTrue(await feed.load())
        self.assertIsNotNone(feed.error)
        self.assertEqual(len(feed.inquiries), 6)


if __name__ == "__main__":
    unittest.main()
