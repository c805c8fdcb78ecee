"""
Order Store

The persistence boundary of the sync engine. OrderStore is the interface
the orchestrator, batch runner and integration manager depend on;
SheetsOrderStore keeps Orders / Products / Integrations in Google Sheets tabs
using the project's usual gspread authentication.
"""
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

import gspread
import requests
from oauth2client.service_account import ServiceAccountCredentials

import config

from .errors import StoreError
from .models import (
    ExistingOrderRecord,
    Integration,
    OrderRecord,
    Product,
    format_timestamp,
    parse_timestamp,
)
from .normalizer import parse_decimal

# API errors from gspread plus transport failures underneath it
_BACKEND_ERRORS = (gspread.exceptions.GSpreadException, requests.RequestException)


class OrderStore(ABC):
    """Operations the sync engine needs from the order/product/integration store."""

    @abstractmethod
    def find_product_by_sku(self, sku: str) -> Optional[Product]:
        """Catalog lookup; None when the SKU is unknown."""

    @abstractmethod
    def list_order_history(self, integration: Integration) -> List[ExistingOrderRecord]:
        """Orders already stored for the integration."""

    @abstractmethod
    def insert_order(self, record: OrderRecord) -> None:
        """Persist one order. Raises StoreError when rejected."""

    @abstractmethod
    def update_last_sync(self, integration_id: str, timestamp: datetime) -> None:
        """Record when the integration was last synced."""

    @abstractmethod
    def list_integrations(self, auto_sync_only: bool = False) -> List[Integration]:
        pass

    @abstractmethod
    def get_integration(self, integration_id: str) -> Optional[Integration]:
        pass

    @abstractmethod
    def create_integration(self, integration: Integration) -> None:
        pass

    @abstractmethod
    def set_auto_sync(self, integration_id: str, enabled: bool) -> bool:
        """Returns False when the integration does not exist."""

    @abstractmethod
    def delete_integration(self, integration_id: str) -> bool:
        """Remove the integration row; its orders stay. False when it does not exist."""


def _get_client():
    """Create a gspread client from the service account file, falling back to ADC."""
    scope = [
        'https://spreadsheets.google.com/feeds',
        'https://www.googleapis.com/auth/drive',
    ]
    creds_path = config.get_credentials_path()
    if creds_path:
        creds = ServiceAccountCredentials.from_json_keyfile_name(creds_path, scope)
        return gspread.authorize(creds)
    import google.auth
    credentials, _ = google.auth.default(scopes=scope)
    return gspread.authorize(credentials)


class SheetsOrderStore(OrderStore):
    """
    Google Sheets implementation of OrderStore.

    Tabs are created with their header rows on first use. The product
    catalog is cached for PRODUCT_CACHE_TTL_SECONDS. Worksheet access is
    serialized with a lock because the orchestrator calls in from several
    worker threads.

    For tests, inject a fake spreadsheet: SheetsOrderStore(spreadsheet=fake)
    """

    def __init__(self, sheet_id: str = None, spreadsheet: Optional[object] = None,
                 product_cache_ttl: float = None):
        if spreadsheet is not None:
            self.spreadsheet = spreadsheet
        else:
            target_sheet_id = sheet_id or config.ORDER_STORE_SHEET_ID
            if not target_sheet_id:
                raise ValueError('ORDER_STORE_SHEET_ID must be set')
            try:
                self.spreadsheet = _get_client().open_by_key(target_sheet_id)
            except (gspread.exceptions.GSpreadException, OSError) as e:
                raise StoreError(f"Could not open order store spreadsheet: {e}") from e

        if product_cache_ttl is None:
            product_cache_ttl = config.PRODUCT_CACHE_TTL_SECONDS
        self.product_cache_ttl = product_cache_ttl

        self._lock = threading.Lock()
        self._ws_cache: Dict[str, object] = {}
        self._products: Dict[str, Product] = {}
        self._products_loaded_at: Optional[float] = None

    # ─────────────────────────────────────────────────────────────
    # Internal helpers
    # ─────────────────────────────────────────────────────────────

    def _worksheet(self, title: str, columns: List[str]):
        """Get or create a tab with its header row. Caller holds the lock."""
        if title in self._ws_cache:
            return self._ws_cache[title]
        try:
            ws = self.spreadsheet.worksheet(title)
        except gspread.exceptions.WorksheetNotFound:
            ws = self.spreadsheet.add_worksheet(title=title, rows=1000, cols=len(columns))
            ws.append_row(columns)
        else:
            if not ws.row_values(1):
                ws.append_row(columns)
        self._ws_cache[title] = ws
        return ws

    def _orders_ws(self):
        return self._worksheet(config.ORDERS_SHEET_NAME, config.ORDERS_COLUMNS)

    def _products_ws(self):
        return self._worksheet(config.PRODUCTS_SHEET_NAME, config.PRODUCTS_COLUMNS)

    def _integrations_ws(self):
        return self._worksheet(config.INTEGRATIONS_SHEET_NAME, config.INTEGRATIONS_COLUMNS)

    def _data_rows(self, ws) -> List[List[str]]:
        return ws.get_all_values()[1:]

    def _find_integration_row(self, integration_id: str) -> Optional[int]:
        """1-based sheet row number of an integration, or None."""
        ws = self._integrations_ws()
        for offset, row in enumerate(self._data_rows(ws), start=2):
            if row and str(row[0]) == str(integration_id):
                return offset
        return None

    def _load_products(self) -> None:
        ws = self._products_ws()
        products = {}
        for row in self._data_rows(ws):
            if len(row) < 2 or not row[1].strip():
                continue
            price = parse_decimal(row[3]) if len(row) > 3 else None
            product = Product(
                product_id=row[0].strip(),
                sku=row[1].strip(),
                name=row[2].strip() if len(row) > 2 else '',
                unit_price=price,
            )
            # First catalog entry wins for a repeated SKU
            products.setdefault(product.sku.lower(), product)
        self._products = products
        self._products_loaded_at = time.monotonic()

    def _products_stale(self) -> bool:
        if self._products_loaded_at is None:
            return True
        return time.monotonic() - self._products_loaded_at > self.product_cache_ttl

    # ─────────────────────────────────────────────────────────────
    # Orders and products
    # ─────────────────────────────────────────────────────────────

    def find_product_by_sku(self, sku: str) -> Optional[Product]:
        key = str(sku or '').strip().lower()
        if not key:
            return None
        try:
            with self._lock:
                if self._products_stale():
                    self._load_products()
                return self._products.get(key)
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Product lookup failed for SKU '{sku}': {e}") from e

    def list_order_history(self, integration: Integration) -> List[ExistingOrderRecord]:
        """Orders previously written for this integration (Integration_ID column)."""
        try:
            with self._lock:
                rows = self._data_rows(self._orders_ws())
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Could not read order history: {e}") from e

        history = []
        for row in rows:
            row = list(row) + [''] * (len(config.ORDERS_COLUMNS) - len(row))
            if str(row[1]) != str(integration.id):
                continue
            history.append(ExistingOrderRecord(
                external_order_id=row[3],
                phone=row[5],
                product_id=row[8],
                created_at=parse_timestamp(row[14]),
            ))
        return history

    def insert_order(self, record: OrderRecord) -> None:
        try:
            with self._lock:
                # RAW keeps '+961...' phones and leading-zero ids as text
                self._orders_ws().append_row(record.to_row(), value_input_option='RAW')
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Insert failed for order {record.external_order_id}: {e}") from e

    # ─────────────────────────────────────────────────────────────
    # Integrations
    # ─────────────────────────────────────────────────────────────

    def update_last_sync(self, integration_id: str, timestamp: datetime) -> None:
        col = config.INTEGRATIONS_COLUMNS.index('Last_Sync_At') + 1
        try:
            with self._lock:
                row_num = self._find_integration_row(integration_id)
                if not row_num:
                    raise StoreError(f"Integration {integration_id} not found")
                self._integrations_ws().update_cell(row_num, col, format_timestamp(timestamp))
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Could not update last sync for {integration_id}: {e}") from e

    def list_integrations(self, auto_sync_only: bool = False) -> List[Integration]:
        try:
            with self._lock:
                rows = self._data_rows(self._integrations_ws())
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Could not list integrations: {e}") from e

        integrations = [Integration.from_row(row) for row in rows if row and row[0]]
        if auto_sync_only:
            integrations = [i for i in integrations if i.auto_sync]
        return integrations

    def get_integration(self, integration_id: str) -> Optional[Integration]:
        for integration in self.list_integrations():
            if str(integration.id) == str(integration_id):
                return integration
        return None

    def create_integration(self, integration: Integration) -> None:
        try:
            with self._lock:
                self._integrations_ws().append_row(integration.to_row(), value_input_option='RAW')
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Could not create integration {integration.id}: {e}") from e

    def set_auto_sync(self, integration_id: str, enabled: bool) -> bool:
        col = config.INTEGRATIONS_COLUMNS.index('Auto_Sync') + 1
        try:
            with self._lock:
                row_num = self._find_integration_row(integration_id)
                if not row_num:
                    return False
                self._integrations_ws().update_cell(row_num, col, 'TRUE' if enabled else 'FALSE')
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Could not update auto sync for {integration_id}: {e}") from e
        return True

    def delete_integration(self, integration_id: str) -> bool:
        try:
            with self._lock:
                row_num = self._find_integration_row(integration_id)
                if not row_num:
                    return False
                self._integrations_ws().delete_rows(row_num)
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Could not delete integration {integration_id}: {e}") from e
        return True
