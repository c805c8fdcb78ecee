"""
Sync Orchestrator
Drives one sync pass for one integration:
read sheet -> normalize rows -> detect duplicates -> insert -> bookkeeping
"""
import asyncio
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import config
from utils.logger import get_logger

from .duplicate_detector import DuplicateDetector, HistoryIndex
from .errors import IntegrationSyncError, SheetReadError, StoreError
from .models import (
    DuplicateClass,
    Integration,
    InvalidRow,
    NormalizationFailure,
    NormalizedOrder,
    OrderRecord,
    Product,
    SyncStats,
    utc_now,
)
from .normalizer import OrderNormalizer
from .order_store import OrderStore
from .sheet_reader import SpreadsheetReader

# Row outcome kinds
INSERTED = 'inserted'
EXISTING = 'existing'
UNKNOWN_SKU = 'unknown_sku'
INVALID = 'invalid'


@dataclass
class RowOutcome:
    """What happened to one source row; folded into SyncStats after the barrier."""
    row_index: int
    kind: str
    sku: str = ''
    reason: str = ''
    partial_data: Dict[str, str] = field(default_factory=dict)
    likely_duplicate: bool = False


class _ProductLookup:
    """Per-pass SKU cache; concurrent rows asking for the same SKU share one lookup."""

    def __init__(self, store: OrderStore):
        self.store = store
        self._pending: Dict[str, asyncio.Task] = {}

    async def get(self, sku: str) -> Optional[Product]:
        key = sku.strip().lower()
        if key not in self._pending:
            self._pending[key] = asyncio.ensure_future(
                asyncio.to_thread(self.store.find_product_by_sku, sku)
            )
        return await self._pending[key]


class SyncOrchestrator:
    """Runs sync passes against an OrderStore"""

    def __init__(self, store: OrderStore, reader: SpreadsheetReader = None,
                 normalizer: OrderNormalizer = None, detector: DuplicateDetector = None,
                 max_concurrency: int = None, pass_timeout: float = None, logger=None):
        """
        Args:
            store: Order/product/integration store
            reader: Spreadsheet reader (default: SpreadsheetReader())
            normalizer: Row normalizer (default: OrderNormalizer())
            detector: Duplicate policy (default: DuplicateDetector() from config)
            max_concurrency: Order-id groups processed at once (SYNC_MAX_CONCURRENCY)
            pass_timeout: Whole-pass timeout in seconds (SYNC_PASS_TIMEOUT_SECONDS)
            logger: SyncLogger (default: process logger)
        """
        self.store = store
        self.reader = reader or SpreadsheetReader()
        self.normalizer = normalizer or OrderNormalizer()
        self.detector = detector or DuplicateDetector()
        self.max_concurrency = max(1, max_concurrency or config.SYNC_MAX_CONCURRENCY)
        self.pass_timeout = pass_timeout if pass_timeout is not None else config.SYNC_PASS_TIMEOUT_SECONDS
        self.logger = logger or get_logger()

    async def run_sync(self, integration: Integration) -> SyncStats:
        """
        Run one sync pass.

        Row-level problems end up in the returned SyncStats. Only failures
        that make the whole pass meaningless raise.

        Raises:
            IntegrationSyncError: sheet unreadable, history unavailable or
                pass timeout. Rows inserted before a timeout stay committed;
                the next pass skips them by external order id.
        """
        try:
            return await asyncio.wait_for(self._run_pass(integration), timeout=self.pass_timeout)
        except asyncio.TimeoutError as e:
            cause = TimeoutError(f"sync pass exceeded {self.pass_timeout}s")
            self.logger.error(f"Integration {integration.id} - {cause}", component="SyncOrchestrator")
            raise IntegrationSyncError(integration.id, cause) from e

    # ─────────────────────────────────────────────────────────────
    # Pass phases
    # ─────────────────────────────────────────────────────────────

    async def _run_pass(self, integration: Integration) -> SyncStats:
        stats = SyncStats(integration_id=integration.id, started_at=utc_now())
        self.logger.log_sync_start(integration.id, integration.spreadsheet_id, integration.sheet_name)

        # === PHASE 1: READ ===
        try:
            snapshot = await asyncio.to_thread(
                self.reader.read, integration.spreadsheet_id, integration.sheet_name
            )
        except SheetReadError as e:
            self.logger.error(f"Integration {integration.id} - Sheet read failed: {e}",
                              component="SyncOrchestrator")
            raise IntegrationSyncError(integration.id, e) from e
        rows = list(snapshot)
        stats.total = len(rows)

        # === PHASE 2: HISTORY SNAPSHOT (before any insert decision) ===
        try:
            history = await asyncio.to_thread(self.store.list_order_history, integration)
        except StoreError as e:
            self.logger.error(f"Integration {integration.id} - History fetch failed: {e}",
                              component="SyncOrchestrator")
            raise IntegrationSyncError(integration.id, e) from e
        index = self.detector.build_index(history)

        # === PHASE 3: NORMALIZE ===
        outcomes: Dict[int, RowOutcome] = {}
        groups: Dict[str, List[NormalizedOrder]] = OrderedDict()
        for row in rows:
            result = self.normalizer.normalize(row)
            if isinstance(result, NormalizationFailure):
                outcomes[row.row_index] = RowOutcome(
                    row_index=row.row_index, kind=INVALID,
                    reason=result.reason, partial_data=result.partial_data(),
                )
            else:
                groups.setdefault(result.external_order_id, []).append(result)

        # === PHASE 4: CLASSIFY + INSERT ===
        # Rows sharing an external order id run one after another; distinct ids
        # run concurrently up to max_concurrency.
        semaphore = asyncio.Semaphore(self.max_concurrency)
        products = _ProductLookup(self.store)

        async def process_group(orders: List[NormalizedOrder]) -> List[RowOutcome]:
            async with semaphore:
                results = []
                claimed = False
                for order in orders:
                    outcome = await self._process_order(order, integration, index, products, claimed)
                    claimed = claimed or outcome.kind == INSERTED
                    results.append(outcome)
                return results

        group_results = await asyncio.gather(
            *(process_group(orders) for orders in groups.values()),
            return_exceptions=True,
        )
        for result in group_results:
            if isinstance(result, Exception):
                self.logger.error(f"Integration {integration.id} - Row processing failed: {result}",
                                  component="SyncOrchestrator", exc_info=result)
                raise IntegrationSyncError(integration.id, result) from result
            if isinstance(result, BaseException):
                # cancellation and interpreter exits pass through unwrapped
                raise result
            for outcome in result:
                outcomes[outcome.row_index] = outcome

        # === PHASE 5: FOLD (source row order) ===
        for row in rows:
            self._fold(stats, outcomes[row.row_index], integration)
        stats.finished_at = utc_now()

        # === PHASE 6: BOOKKEEPING ===
        try:
            await asyncio.to_thread(self.store.update_last_sync, integration.id, stats.finished_at)
            stats.last_sync_at = stats.finished_at
        except StoreError as e:
            self.logger.warning(
                f"Integration {integration.id} - Could not record last sync time: {e}",
                component="SyncOrchestrator",
            )

        self.logger.log_sync_complete(stats)
        return stats

    async def _process_order(self, order: NormalizedOrder, integration: Integration,
                             index: HistoryIndex, products: _ProductLookup,
                             claimed: bool) -> RowOutcome:
        """Exact-id check, product lookup, classification and insert for one row."""
        # Exact id first so a re-synced row never touches the catalog
        if claimed or self.detector.is_exact_duplicate(order, index):
            return RowOutcome(row_index=order.row_index, kind=EXISTING, sku=order.sku)

        try:
            product = await products.get(order.sku)
        except StoreError as e:
            return RowOutcome(row_index=order.row_index, kind=INVALID,
                              reason=str(e), partial_data=order.partial_data())
        if product is None:
            return RowOutcome(row_index=order.row_index, kind=UNKNOWN_SKU, sku=order.sku)

        if not order.has_source_price and product.unit_price is not None:
            order = order.with_unit_price(product.unit_price)

        now = utc_now()
        classification = self.detector.classify(order, index, product_id=product.product_id, now=now)
        status = self.detector.status_for(classification)
        record = OrderRecord.from_order(order, integration, product, status, created_at=now)

        try:
            await asyncio.to_thread(self.store.insert_order, record)
        except StoreError as e:
            return RowOutcome(row_index=order.row_index, kind=INVALID,
                              reason=str(e), partial_data=order.partial_data())

        return RowOutcome(
            row_index=order.row_index, kind=INSERTED, sku=order.sku,
            likely_duplicate=classification is DuplicateClass.LIKELY_DUPLICATE,
        )

    def _fold(self, stats: SyncStats, outcome: RowOutcome, integration: Integration) -> None:
        if outcome.kind == INSERTED:
            stats.new_count += 1
            if outcome.likely_duplicate:
                stats.likely_duplicate_count += 1
        elif outcome.kind == EXISTING:
            stats.skipped_as_existing_count += 1
        elif outcome.kind == UNKNOWN_SKU:
            stats.add_skipped_sku(outcome.sku)
        else:
            stats.invalid_rows.append(InvalidRow(outcome.row_index, outcome.reason, outcome.partial_data))
            self.logger.log_row_invalid(integration.id, outcome.row_index, outcome.reason)
