"""Tests for receipt summaries, rendering and live updates."""

from __future__ import annotations

import datetime
import io
import unittest
from unittest.mock import MagicMock, patch

from mockfirestore import MockFirestore
from PIL import Image

from squadpay.errors import NotFoundError
from squadpay.receipt.render import WIDTH, render_receipt_png
from squadpay.receipt.services import (
    ReceiptService,
    ReceiptWatcher,
    build_summary,
    issued_at_for,
    receipt_id_for,
)

from .helpers import mock_firestore_module, seed_participant, seed_tournament
from .mock_utils import FakeFeed

CREATED = datetime.datetime(2024, 5, 3, 18, 30, tzinfo=datetime.timezone.utc)


def _participant(**extra):
    data = {
        "id": "abcdef123xyz",
        "name": "Asha",
        "teamName": "Blue XI",
        "contact": "9876543210",
        "amountDue": 1500,
        "amountPaid": 500,
        "status": "pending",
        "paymentRef": None,
        "createdAt": CREATED,
    }
    data.update(extra)
    return data


class SummaryTestCase(unittest.TestCase):
    """Test case for build_summary."""

    def test_summary_fields(self) -> None:
        summary = build_summary(
            "t1", _participant(), {"id": "t1", "name": "Summer Cup"}
        )

        self.assertEqual(summary["receipt_id"], "RCT-123XYZ")
        self.assertEqual(summary["tournament_name"], "Summer Cup")
        self.assertEqual(summary["display_name"], "Asha (Blue XI)")
        self.assertEqual(summary["remaining"], 1000)
        self.assertEqual(summary["status"], "partial")
        self.assertEqual(summary["status_label"], "PARTIAL")
        self.assertEqual(summary["issued_on"], "03 May 2024")

    def test_missing_tournament_uses_default_name(self) -> None:
        summary = build_summary("t1", _participant(), None)
        self.assertEqual(summary["tournament_name"], "Tournament")

    def test_short_id(self) -> None:
        self.assertEqual(receipt_id_for("ab1"), "RCT-AB1")

    def test_issued_at_falls_back_to_now(self) -> None:
        now = datetime.datetime(2024, 6, 1, tzinfo=datetime.timezone.utc)
        self.assertEqual(issued_at_for(None, now=now), now)

    def test_issued_at_from_firestore_timestamp(self) -> None:
        timestamp = MagicMock(spec=["to_datetime"])
        timestamp.to_datetime.return_value = CREATED
        self.assertEqual(issued_at_for(timestamp), CREATED)

    def test_share_text(self) -> None:
        summary = build_summary("t1", _participant(), {"id": "t1", "name": "Summer Cup"})
        self.assertEqual(
            ReceiptService.share_text(summary, brand="SquadPay"),
            "SquadPay receipt for Asha (Blue XI) - Summer Cup",
        )


class RenderTestCase(unittest.TestCase):
    """Test case for the PNG export."""

    def test_png_at_double_scale(self) -> None:
        summary = build_summary(
            "t1", _participant(paymentRef="UPI-42"), {"id": "t1", "name": "Summer Cup"}
        )

        png = render_receipt_png(summary)

        self.assertTrue(png.startswith(b"\x89PNG"))
        image = Image.open(io.BytesIO(png))
        self.assertEqual(image.width, WIDTH * 2)
        self.assertGreater(image.height, 0)


class ReceiptServiceTestCase(unittest.TestCase):
    """Test case for loading receipts from the store."""

    def setUp(self) -> None:
        self.db = MockFirestore()
        patcher = patch(
            "squadpay.roster.services.firestore", mock_firestore_module(self.db)
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self.db.reset()

    def test_get_summary(self) -> None:
        seed_tournament(self.db, "t1", "Summer Cup")
        seed_participant(
            self.db, "t1", "p00001", name="Ravi", amountDue=800, amountPaid=800
        )

        summary = ReceiptService.get_summary("t1", "p00001", self.db)

        self.assertEqual(summary["tournament_name"], "Summer Cup")
        self.assertEqual(summary["status"], "paid")
        self.assertEqual(summary["receipt_id"], "RCT-P00001")

    def test_missing_participant(self) -> None:
        seed_tournament(self.db, "t1", "Summer Cup")
        with self.assertRaises(NotFoundError):
            ReceiptService.get_summary("t1", "nope", self.db)


class ReceiptWatcherTestCase(unittest.TestCase):
    """Test case for the live receipt."""

    def setUp(self) -> None:
        self.feed = FakeFeed()
        self.changes = []
        self.watcher = ReceiptWatcher(
            self.feed, "t1", "p1", on_change=self.changes.append
        )
        self.watcher.start()

    def tearDown(self) -> None:
        self.watcher.stop()

    def test_loading_until_participant_arrives(self) -> None:
        self.assertTrue(self.watcher.loading)
        self.assertIsNone(self.watcher.summary)

    def test_summary_follows_updates(self) -> None:
        self.feed.document(("t1", "p1")).push(_participant(id="p1"))
        self.feed.document("t1").push({"id": "t1", "name": "Summer Cup"})
        self.assertEqual(self.watcher.summary["status"], "partial")
        self.assertEqual(self.watcher.summary["tournament_name"], "Summer Cup")

        self.feed.document(("t1", "p1")).push(_participant(id="p1", amountPaid=1500))

        self.assertEqual(self.watcher.summary["status"], "paid")
        self.assertEqual(len(self.changes), 3)

    def test_missing_participant_is_terminal(self) -> None:
        self.feed.document(("t1", "p1")).push(None)
        self.feed.document(("t1", "p1")).push(_participant(id="p1"))

        self.assertTrue(self.watcher.not_found)
        self.assertFalse(self.watcher.loading)
        self.assertIsNone(self.watcher.summary)

    def test_error(self) -> None:
        self.feed.document(("t1", "p1")).fail()

        self.assertEqual(self.watcher.error, "Failed to load receipt.")
        self.assertFalse(self.watcher.loading)

    def test_stop_cancels_listeners(self) -> None:
        self.watcher.stop()

        for watch in self.feed.document_watches:
            self.assertFalse(watch.subscription.active)


if __name__ == "__main__":
    unittest.main()
