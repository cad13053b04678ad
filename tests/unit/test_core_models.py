# PATH: tests/unit/test_core_models.py
"""
Unit tests for core data models and pagination helpers.

Includes:
- Presentation contract (camelCase keys, optional fields omitted)
- CURSOR CONTRACT tests
- ID resolution tests
"""

import unittest

from core.constants import PAGE_SIZE, TxStatus
from core.models import AddressSummary, Block, ChainTip, Page, Transaction
from core.pagination import (
    encode_cursor,
    is_numeric_id,
    next_cursor_for,
    paginate,
    parse_cursor,
    resolve_id,
    same_hash,
)


class TestBlock(unittest.TestCase):

    def test_to_dict(self):
        block = Block(height=7, hash="0xab", timestamp="2024-01-01T00:00:00+00:00", tx_count=2)
        self.assertEqual(block.to_dict(), {
            "height": 7,
            "hash": "0xab",
            "timestamp": "2024-01-01T00:00:00+00:00",
            "txCount": 2,
        })

    def test_negative_tx_count_rejected(self):
        with self.assertRaises(ValueError):
            Block(height=1, hash="0x1", timestamp="t", tx_count=-1)

    def test_frozen(self):
        block = Block(height=1, hash="0x1", timestamp="t", tx_count=0)
        with self.assertRaises(AttributeError):
            block.height = 2


class TestTransaction(unittest.TestCase):

    def test_confirmed_to_dict(self):
        tx = Transaction(
            hash="0xaa",
            status=TxStatus.SUCCESS,
            block_height=3,
            timestamp="t",
            size=120,
        )
        self.assertEqual(tx.to_dict(), {
            "hash": "0xaa",
            "status": "success",
            "blockHeight": 3,
            "timestamp": "t",
            "size": 120,
        })

    def test_pending_omits_block_fields(self):
        tx = Transaction(hash="0xbb", status=TxStatus.PENDING)
        self.assertEqual(tx.to_dict(), {"hash": "0xbb", "status": "pending"})


class TestAddressSummaryAndTip(unittest.TestCase):

    def test_address_to_dict(self):
        self.assertEqual(AddressSummary("5G").to_dict(), {"address": "5G"})
        self.assertEqual(
            AddressSummary("5G", balance="1", tx_count=0).to_dict(),
            {"address": "5G", "balance": "1", "txCount": 0},
        )

    def test_chain_tip(self):
        tip = ChainTip(hash="0x1", height=9)
        self.assertEqual(tip.height, 9)


class TestPage(unittest.TestCase):

    def test_empty_page(self):
        page = Page()
        self.assertEqual(page.items, [])
        self.assertFalse(page.has_more)
        self.assertEqual(page.to_dict(), {"items": []})

    def test_pages_do_not_share_items(self):
        self.assertIsNot(Page().items, Page().items)

    def test_to_dict_with_cursor(self):
        tx = Transaction(hash="0x1", status=TxStatus.FAILED)
        page = Page(items=[tx], next_cursor="20")
        self.assertTrue(page.has_more)
        self.assertEqual(page.to_dict(), {
            "items": [{"hash": "0x1", "status": "failed"}],
            "nextCursor": "20",
        })


class TestCursorContract(unittest.TestCase):
    """
    CURSOR CONTRACT: decimal offset strings, absent means 0, anything
    else is invalid input.
    """

    def test_parse(self):
        self.assertEqual(parse_cursor(None), 0)
        self.assertEqual(parse_cursor(""), 0)
        self.assertEqual(parse_cursor("40"), 40)
        self.assertEqual(parse_cursor(" 20 "), 20)

    def test_parse_invalid(self):
        for cursor in ("abc", "-1", "1.5", "0x10", "20a"):
            self.assertIsNone(parse_cursor(cursor), cursor)

    def test_encode(self):
        self.assertEqual(encode_cursor(60), "60")

    def test_next_cursor_strictly_more(self):
        self.assertEqual(next_cursor_for(0, 21), "20")
        self.assertIsNone(next_cursor_for(0, 20))
        self.assertIsNone(next_cursor_for(80, 100))
        self.assertEqual(next_cursor_for(80, 101), "100")

    def test_paginate(self):
        items = list(range(45))
        first = paginate(items, 0)
        self.assertEqual(first.items, list(range(PAGE_SIZE)))
        self.assertEqual(first.next_cursor, "20")

        last = paginate(items, 40)
        self.assertEqual(last.items, [40, 41, 42, 43, 44])
        self.assertIsNone(last.next_cursor)

        beyond = paginate(items, 100)
        self.assertEqual(beyond.items, [])
        self.assertIsNone(beyond.next_cursor)


class TestIdResolution(unittest.TestCase):

    def test_numeric_is_height(self):
        block_id = resolve_id("12345")
        self.assertTrue(block_id.is_height)
        self.assertEqual(block_id.height, 12345)

    def test_anything_else_is_hash(self):
        for value in ("0xabc", "abc123", "12a", "-5"):
            block_id = resolve_id(value)
            self.assertFalse(block_id.is_height, value)
            self.assertEqual(block_id.hash, value)

    def test_empty(self):
        self.assertIsNone(resolve_id(""))
        self.assertIsNone(resolve_id(None))
        self.assertIsNone(resolve_id("   "))

    def test_is_numeric_id(self):
        self.assertTrue(is_numeric_id("007"))
        self.assertFalse(is_numeric_id("0x7"))

    def test_same_hash(self):
        self.assertTrue(same_hash("0xABcd", "0xabCD"))
        self.assertFalse(same_hash("0x1", None))


if __name__ == "__main__":
    unittest.main()
