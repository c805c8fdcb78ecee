"""
Sync Engine Data Models

Pure definitions -- no side effects, no imports of external services.
"""
from __future__ import annotations

import random
import string
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from .sync_config import ORDER_ID_PREFIX


class OrderStatus(Enum):
    """Status codes written to the order store."""
    NEW = 1
    DOUBLE = 15


class DuplicateClass(Enum):
    """Outcome of duplicate detection for one normalized row."""
    NEW = 'NEW'
    EXACT_DUPLICATE = 'EXACT_DUPLICATE'
    LIKELY_DUPLICATE = 'LIKELY_DUPLICATE'


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO-8601 or 'YYYY-MM-DD HH:MM:SS' string into an aware UTC datetime."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            try:
                parsed = datetime.strptime(text, '%Y-%m-%d %H:%M:%S')
            except ValueError:
                return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ''


def generate_id(prefix: str) -> str:
    """
    Generate a store identifier.

    Format: {PREFIX}-{YYYYMMDD}-{RANDOM6}
    Example: INT-20260216-A7F92K
    """
    date_part = datetime.now().strftime('%Y%m%d')
    random_part = ''.join(random.choices(string.ascii_uppercase + string.digits, k=6))
    return f"{prefix}-{date_part}-{random_part}"


# ---------------------------------------------------------------------------
# Source rows
# ---------------------------------------------------------------------------

@dataclass
class SheetRow:
    """One data row from the spreadsheet export, keyed by logical column."""
    row_index: int
    values: Dict[str, str] = field(default_factory=dict)

    def get(self, column: str) -> str:
        return self.values.get(column, '') or ''


@dataclass(frozen=True)
class NormalizedOrder:
    """A validated order row. Only this shape crosses the normalizer boundary."""
    row_index: int
    external_order_id: str
    customer_name: str
    phone: str
    sku: str
    address: str = ''
    city: str = ''
    product_name: str = ''
    quantity: int = 1
    unit_price: Decimal = Decimal('0')
    has_source_price: bool = True

    @property
    def total_amount(self) -> Decimal:
        return self.unit_price * self.quantity

    def with_unit_price(self, unit_price: Decimal) -> 'NormalizedOrder':
        return replace(self, unit_price=unit_price, has_source_price=True)

    def partial_data(self) -> Dict[str, str]:
        return {
            'order_id': self.external_order_id,
            'name': self.customer_name,
            'phone': self.phone,
            'sku': self.sku,
        }


@dataclass
class NormalizationFailure:
    """A row that could not be normalized; consumed as an invalid row."""
    row_index: int
    reason: str
    original_row: SheetRow
    missing_fields: List[str] = field(default_factory=list)

    def partial_data(self) -> Dict[str, str]:
        return {
            'order_id': self.original_row.get('order_id'),
            'name': self.original_row.get('customer_name'),
            'phone': self.original_row.get('phone'),
            'sku': self.original_row.get('sku'),
        }


# ---------------------------------------------------------------------------
# Store records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExistingOrderRecord:
    """Read-only snapshot of an order already in the store."""
    external_order_id: str
    phone: str
    product_id: str
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Product:
    product_id: str
    sku: str
    name: str = ''
    unit_price: Optional[Decimal] = None


@dataclass
class Integration:
    """Binding between a user and one spreadsheet tab."""
    id: str
    user_id: str
    spreadsheet_id: str
    sheet_name: str
    auto_sync: bool = True
    last_sync_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def to_row(self) -> List[str]:
        """Convert to a list matching INTEGRATIONS_COLUMNS order."""
        return [
            str(self.id),
            str(self.user_id),
            self.spreadsheet_id,
            self.sheet_name,
            'TRUE' if self.auto_sync else 'FALSE',
            format_timestamp(self.last_sync_at),
            format_timestamp(self.created_at),
        ]

    @classmethod
    def from_row(cls, row: list) -> 'Integration':
        """Create an Integration from a sheet row (list of strings)."""
        def _safe(idx, default=''):
            return row[idx] if idx < len(row) and row[idx] else default

        return cls(
            id=_safe(0),
            user_id=_safe(1),
            spreadsheet_id=_safe(2),
            sheet_name=_safe(3),
            auto_sync=str(_safe(4, 'TRUE')).strip().lower() in ('true', '1', 'yes'),
            last_sync_at=parse_timestamp(_safe(5)),
            created_at=parse_timestamp(_safe(6)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'spreadsheet_id': self.spreadsheet_id,
            'sheet_name': self.sheet_name,
            'auto_sync': self.auto_sync,
            'last_sync_at': format_timestamp(self.last_sync_at) or None,
        }


@dataclass
class OrderRecord:
    """A row written to the Orders tab."""
    order_id: str
    integration_id: str
    user_id: str
    external_order_id: str
    customer_name: str
    phone: str
    address: str
    city: str
    product_id: str
    sku: str
    quantity: int
    unit_price: Decimal
    total_amount: Decimal
    status: OrderStatus
    created_at: datetime

    @classmethod
    def from_order(cls, order: NormalizedOrder, integration: Integration, product: Product,
                   status: OrderStatus, created_at: datetime) -> 'OrderRecord':
        return cls(
            order_id=generate_id(ORDER_ID_PREFIX),
            integration_id=str(integration.id),
            user_id=str(integration.user_id),
            external_order_id=order.external_order_id,
            customer_name=order.customer_name,
            phone=order.phone,
            address=order.address,
            city=order.city,
            product_id=product.product_id,
            sku=order.sku,
            quantity=order.quantity,
            unit_price=order.unit_price,
            total_amount=order.total_amount,
            status=status,
            created_at=created_at,
        )

    def to_row(self) -> List[str]:
        """Convert to a list matching ORDERS_COLUMNS order."""
        return [
            self.order_id,
            self.integration_id,
            self.user_id,
            self.external_order_id,
            self.customer_name,
            self.phone,
            self.address,
            self.city,
            self.product_id,
            self.sku,
            str(self.quantity),
            str(self.unit_price),
            str(self.total_amount),
            str(self.status.value),
            format_timestamp(self.created_at),
        ]

    def to_history(self) -> ExistingOrderRecord:
        return ExistingOrderRecord(
            external_order_id=self.external_order_id,
            phone=self.phone,
            product_id=self.product_id,
            created_at=self.created_at,
        )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class InvalidRow:
    row_index: int
    reason: str
    partial_data: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {'row': self.row_index, 'reason': self.reason, 'data': dict(self.partial_data)}


@dataclass
class SyncStats:
    """Result of one sync pass. total == new_count + skipped_count always holds."""
    integration_id: Any = None
    total: int = 0
    new_count: int = 0
    likely_duplicate_count: int = 0
    skipped_by_sku_list: List[str] = field(default_factory=list)
    skipped_by_sku_count: int = 0
    skipped_as_existing_count: int = 0
    invalid_rows: List[InvalidRow] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    last_sync_at: Optional[datetime] = None

    @property
    def skipped_count(self) -> int:
        return self.skipped_as_existing_count + self.skipped_by_sku_count + len(self.invalid_rows)

    def add_skipped_sku(self, sku: str) -> None:
        self.skipped_by_sku_count += 1
        if sku not in self.skipped_by_sku_list:
            self.skipped_by_sku_list.append(sku)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'integration_id': self.integration_id,
            'total': self.total,
            'new': self.new_count,
            'likely_duplicates': self.likely_duplicate_count,
            'skipped': self.skipped_count,
            'skipped_skus': list(self.skipped_by_sku_list),
            'skipped_existing_orders': self.skipped_as_existing_count,
            'invalid_data': [row.to_dict() for row in self.invalid_rows],
            'started_at': format_timestamp(self.started_at) or None,
            'finished_at': format_timestamp(self.finished_at) or None,
            'last_sync_at': format_timestamp(self.last_sync_at) or None,
        }


@dataclass
class IntegrationResult:
    integration_id: Any
    stats: Optional[SyncStats] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {'integration_id': self.integration_id, 'status': 'success',
                    'stats': self.stats.to_dict() if self.stats else None}
        return {'integration_id': self.integration_id, 'status': 'error', 'error': self.error}


@dataclass
class BatchReport:
    total_integrations: int = 0
    successful: int = 0
    failed: int = 0
    details: List[IntegrationResult] = field(default_factory=list)

    def add(self, result: IntegrationResult) -> None:
        self.details.append(result)
        if result.ok:
            self.successful += 1
        else:
            self.failed += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total_integrations,
            'successful': self.successful,
            'failed': self.failed,
            'details': [d.to_dict() for d in self.details],
        }
