"""
In-memory fakes shared by the sync engine tests.
No network, no Google Sheets.
"""
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT / 'src') not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT / 'src'))

import gspread

from order_sync.errors import StoreError
from order_sync.models import Integration
from order_sync.order_store import OrderStore
from order_sync.sheet_reader import SheetSnapshot, positional_mapping
from order_sync.sync_config import CANONICAL_COLUMNS


def make_snapshot(rows, source_id='sheet-1', sheet_name='Orders'):
    """Build a SheetSnapshot in canonical column order from a list of dicts."""
    data_rows = [[str(row.get(col, '')) for col in CANONICAL_COLUMNS] for row in rows]
    return SheetSnapshot(
        header=list(CANONICAL_COLUMNS),
        data_rows=data_rows,
        column_map=positional_mapping(len(CANONICAL_COLUMNS)),
        source_id=source_id,
        sheet_name=sheet_name,
    )


def make_integration(integration_id='INT-1', user_id='user-1', auto_sync=True):
    return Integration(
        id=integration_id,
        user_id=user_id,
        spreadsheet_id=f'sheet-{integration_id}',
        sheet_name='Orders',
        auto_sync=auto_sync,
    )


class FakeReader:
    """SpreadsheetReader stand-in returning canned rows or raising."""

    def __init__(self, rows=None, error=None, by_source=None):
        self.rows = rows or []
        self.error = error
        self.by_source = by_source or {}
        self.calls = []

    def read(self, source_id, sheet_name):
        self.calls.append((source_id, sheet_name))
        outcome = self.by_source.get(source_id, self.error)
        if isinstance(outcome, BaseException):
            raise outcome
        rows = outcome if isinstance(outcome, list) else self.rows
        return make_snapshot(rows, source_id, sheet_name)


class InMemoryOrderStore(OrderStore):
    """OrderStore keeping everything in lists; inserted orders show up in later history."""

    def __init__(self, products=(), history=(), integrations=()):
        self.products = {p.sku: p for p in products}
        self.history = list(history)
        self.inserted = []
        self.integrations = {i.id: i for i in integrations}
        self.last_sync_updates = []
        self.product_lookups = []
        self.reject_external_ids = set()
        self.fail_history = False
        self.fail_last_sync = False

    def find_product_by_sku(self, sku):
        self.product_lookups.append(sku)
        return self.products.get(sku)

    def list_order_history(self, integration):
        if self.fail_history:
            raise StoreError('order history unavailable')
        return self.history + [
            r.to_history() for r in self.inserted if r.integration_id == str(integration.id)
        ]

    def insert_order(self, record):
        if record.external_order_id in self.reject_external_ids:
            raise StoreError(f'insert rejected for {record.external_order_id}')
        self.inserted.append(record)

    def update_last_sync(self, integration_id, timestamp):
        if self.fail_last_sync:
            raise StoreError('integration row locked')
        self.last_sync_updates.append((integration_id, timestamp))
        if integration_id in self.integrations:
            self.integrations[integration_id].last_sync_at = timestamp

    def list_integrations(self, auto_sync_only=False):
        integrations = list(self.integrations.values())
        if auto_sync_only:
            integrations = [i for i in integrations if i.auto_sync]
        return integrations

    def get_integration(self, integration_id):
        return self.integrations.get(integration_id)

    def create_integration(self, integration):
        self.integrations[integration.id] = integration

    def set_auto_sync(self, integration_id, enabled):
        integration = self.integrations.get(integration_id)
        if integration is None:
            return False
        integration.auto_sync = enabled
        return True

    def delete_integration(self, integration_id):
        return self.integrations.pop(integration_id, None) is not None


# ── Fake gspread objects ─────────────────────────────────────────

class FakeWorksheet:
    def __init__(self, title):
        self.title = title
        self.rows = []
        self.fail_next_append = None

    def row_values(self, idx):
        if 1 <= idx <= len(self.rows):
            return list(self.rows[idx - 1])
        return []

    def get_all_values(self):
        return [list(r) for r in self.rows]

    def append_row(self, values, value_input_option=None):
        if self.fail_next_append is not None:
            error, self.fail_next_append = self.fail_next_append, None
            raise error
        self.rows.append([str(v) for v in values])

    def update_cell(self, row, col, value):
        current = self.rows[row - 1]
        while len(current) < col:
            current.append('')
        current[col - 1] = str(value)

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSpreadsheet:
    def __init__(self):
        self.sheets = {}

    def worksheet(self, title):
        if title not in self.sheets:
            raise gspread.exceptions.WorksheetNotFound(title)
        return self.sheets[title]

    def add_worksheet(self, title, rows, cols):
        ws = FakeWorksheet(title)
        self.sheets[title] = ws
        return ws
