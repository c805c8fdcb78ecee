"""
Duplicate detector tests.
The probable-duplicate window used throughout is 7 days (DUPLICATE_WINDOW_DAYS default).
"""
import sys
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Ensure src/ is on path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / 'src'))

from order_sync.duplicate_detector import DuplicateDetector, HistoryIndex
from order_sync.models import DuplicateClass, ExistingOrderRecord, NormalizedOrder, OrderStatus

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
WINDOW_DAYS = 7


def _order(order_id='2001', phone='+96170111222', sku='ABC'):
    return NormalizedOrder(row_index=1, external_order_id=order_id, customer_name='Nour',
                           phone=phone, sku=sku)


def _record(order_id='1001', phone='+96170111222', product_id='P-1', days_ago=2):
    return ExistingOrderRecord(
        external_order_id=order_id,
        phone=phone,
        product_id=product_id,
        created_at=NOW - timedelta(days=days_ago),
    )


class TestDuplicateDetector(unittest.TestCase):

    def setUp(self):
        self.detector = DuplicateDetector(window_days=WINDOW_DAYS, require_same_product=True,
                                          country_code='961')

    def test_exact_duplicate(self):
        history = [_record(order_id='2001')]
        self.assertEqual(self.detector.classify(_order(), history, 'P-1', NOW),
                         DuplicateClass.EXACT_DUPLICATE)
        self.assertTrue(self.detector.is_exact_duplicate(_order(), history))

    def test_exact_takes_priority_without_product(self):
        # no product id resolved yet, exact id still wins
        self.assertEqual(self.detector.classify(_order(), [_record(order_id='2001', days_ago=30)]),
                         DuplicateClass.EXACT_DUPLICATE)

    def test_same_phone_and_product_two_days_apart(self):
        result = self.detector.classify(_order(), [_record(days_ago=2)], 'P-1', NOW)
        self.assertEqual(result, DuplicateClass.LIKELY_DUPLICATE)
        self.assertEqual(DuplicateDetector.status_for(result), OrderStatus.DOUBLE)

    def test_window_boundary_inclusive(self):
        self.assertEqual(self.detector.classify(_order(), [_record(days_ago=7)], 'P-1', NOW),
                         DuplicateClass.LIKELY_DUPLICATE)

    def test_outside_window(self):
        result = self.detector.classify(_order(), [_record(days_ago=8)], 'P-1', NOW)
        self.assertEqual(result, DuplicateClass.NEW)
        self.assertEqual(DuplicateDetector.status_for(result), OrderStatus.NEW)

    def test_future_timestamp_uses_absolute_distance(self):
        self.assertEqual(self.detector.classify(_order(), [_record(days_ago=-1)], 'P-1', NOW),
                         DuplicateClass.LIKELY_DUPLICATE)

    def test_different_product_is_new(self):
        # repeat customer buying something else is not a duplicate
        self.assertEqual(self.detector.classify(_order(), [_record(product_id='P-2')], 'P-1', NOW),
                         DuplicateClass.NEW)

    def test_history_phone_in_other_format(self):
        history = [_record(phone='0096170111222')]
        self.assertEqual(self.detector.classify(_order(), history, 'P-1', NOW),
                         DuplicateClass.LIKELY_DUPLICATE)

    def test_phone_only_matching_when_enabled(self):
        detector = DuplicateDetector(window_days=WINDOW_DAYS, require_same_product=False,
                                     country_code='961')
        self.assertEqual(detector.classify(_order(), [_record(product_id='P-2')], 'P-1', NOW),
                         DuplicateClass.LIKELY_DUPLICATE)

    def test_missing_timestamp_never_matches(self):
        record = ExistingOrderRecord('1001', '+96170111222', 'P-1', created_at=None)
        self.assertEqual(self.detector.classify(_order(), [record], 'P-1', NOW), DuplicateClass.NEW)

    def test_naive_reference_time_treated_as_utc(self):
        naive_now = NOW.replace(tzinfo=None)
        self.assertEqual(self.detector.classify(_order(), [_record(days_ago=1)], 'P-1', naive_now),
                         DuplicateClass.LIKELY_DUPLICATE)

    def test_prebuilt_index(self):
        index = self.detector.build_index([_record(order_id='1001'), _record(order_id='1002')])
        self.assertIsInstance(index, HistoryIndex)
        self.assertEqual(len(index), 2)
        self.assertIn('1002', index)
        self.assertEqual(self.detector.classify(_order(order_id='1002'), index),
                         DuplicateClass.EXACT_DUPLICATE)

    def test_empty_history(self):
        self.assertEqual(self.detector.classify(_order(), [], 'P-1', NOW), DuplicateClass.NEW)


if __name__ == '__main__':
    unittest.main()
