"""
Duplicate Detector
Two-tier classification of a normalized order against order history:

1. EXACT_DUPLICATE - the external order id was already ingested (re-sync)
2. LIKELY_DUPLICATE - same customer phone and product within the window;
   inserted with the DOUBLE status for human review, never dropped
3. NEW - anything else
"""
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

import config

from .models import (
    DuplicateClass,
    ExistingOrderRecord,
    NormalizedOrder,
    OrderStatus,
    parse_timestamp,
    utc_now,
)
from .normalizer import canonical_phone


class HistoryIndex:
    """
    Lookup structure over an immutable history snapshot.

    Phones are canonicalized on the way in so stored numbers written in
    another format still match.
    """

    def __init__(self, records: Iterable[ExistingOrderRecord] = (), country_code: str = None):
        self.country_code = country_code or config.DEFAULT_COUNTRY_CODE
        self.order_ids: Set[str] = set()
        self.by_phone_product: Dict[Tuple[str, str], List[Optional[datetime]]] = defaultdict(list)
        self.by_phone: Dict[str, List[Optional[datetime]]] = defaultdict(list)
        self.size = 0
        for record in records:
            self.add(record)

    def add(self, record: ExistingOrderRecord) -> None:
        self.size += 1
        if record.external_order_id:
            self.order_ids.add(str(record.external_order_id).strip())
        phone = canonical_phone(record.phone, self.country_code)
        if not phone:
            return
        created_at = parse_timestamp(record.created_at)
        self.by_phone[phone].append(created_at)
        if record.product_id:
            self.by_phone_product[(phone, str(record.product_id))].append(created_at)

    def __contains__(self, external_order_id) -> bool:
        return str(external_order_id).strip() in self.order_ids

    def __len__(self) -> int:
        return self.size


class DuplicateDetector:
    """Applies the duplicate policy to one normalized order at a time"""

    def __init__(self, window_days: float = None, require_same_product: bool = None,
                 country_code: str = None):
        if window_days is None:
            window_days = config.DUPLICATE_WINDOW_DAYS
        if require_same_product is None:
            require_same_product = config.DUPLICATE_REQUIRE_SAME_PRODUCT
        self.window = timedelta(days=window_days)
        self.require_same_product = require_same_product
        self.country_code = country_code or config.DEFAULT_COUNTRY_CODE

    def build_index(self, history: Iterable[ExistingOrderRecord]) -> HistoryIndex:
        return HistoryIndex(history, self.country_code)

    def _as_index(self, history) -> HistoryIndex:
        if isinstance(history, HistoryIndex):
            return history
        return self.build_index(history or [])

    def is_exact_duplicate(self, order: NormalizedOrder,
                           history: Union[HistoryIndex, Iterable[ExistingOrderRecord]]) -> bool:
        """True when the order's external id is already in the history."""
        return order.external_order_id in self._as_index(history)

    def classify(self, order: NormalizedOrder,
                 history: Union[HistoryIndex, Iterable[ExistingOrderRecord]],
                 product_id: Optional[str] = None,
                 now: Optional[datetime] = None) -> DuplicateClass:
        """
        Classify an order against the history snapshot.

        Args:
            order: Normalized order
            history: ExistingOrderRecords or a prebuilt HistoryIndex
            product_id: Resolved catalog product id (required for the
                phone+product rule)
            now: Reference time for the window (default: current UTC time)

        Returns:
            DuplicateClass
        """
        index = self._as_index(history)
        if order.external_order_id in index:
            return DuplicateClass.EXACT_DUPLICATE

        phone = canonical_phone(order.phone, self.country_code)
        if not phone:
            return DuplicateClass.NEW

        if self.require_same_product:
            if not product_id:
                return DuplicateClass.NEW
            timestamps = index.by_phone_product.get((phone, str(product_id)), [])
        else:
            timestamps = index.by_phone.get(phone, [])

        reference = parse_timestamp(now) or utc_now()
        for created_at in timestamps:
            if created_at is not None and abs(reference - created_at) <= self.window:
                return DuplicateClass.LIKELY_DUPLICATE
        return DuplicateClass.NEW

    @staticmethod
    def status_for(classification: DuplicateClass) -> OrderStatus:
        """Status persisted for an order that is going to be inserted."""
        if classification is DuplicateClass.LIKELY_DUPLICATE:
            return OrderStatus.DOUBLE
        return OrderStatus.NEW
