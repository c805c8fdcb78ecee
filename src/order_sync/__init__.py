"""
Sheet Order Sync Engine
Reads public spreadsheet tabs, normalizes the rows, detects duplicates and
inserts new orders into the order store
"""
from .batch_runner import BatchRunner
from .duplicate_detector import DuplicateDetector, HistoryIndex
from .errors import (
    AccessDenied,
    EmptySource,
    FormatError,
    IntegrationSyncError,
    SheetReadError,
    SourceUnavailable,
    StoreError,
    SyncError,
)
from .integration_manager import IntegrationManager
from .models import (
    BatchReport,
    DuplicateClass,
    ExistingOrderRecord,
    Integration,
    NormalizedOrder,
    OrderStatus,
    Product,
    SyncStats,
)
from .normalizer import OrderNormalizer
from .order_store import OrderStore, SheetsOrderStore
from .orchestrator import SyncOrchestrator
from .sheet_reader import SpreadsheetReader

__all__ = [
    'BatchRunner',
    'DuplicateDetector',
    'HistoryIndex',
    'IntegrationManager',
    'OrderNormalizer',
    'OrderStore',
    'SheetsOrderStore',
    'SpreadsheetReader',
    'SyncOrchestrator',
    'BatchReport',
    'DuplicateClass',
    'ExistingOrderRecord',
    'Integration',
    'NormalizedOrder',
    'OrderStatus',
    'Product',
    'SyncStats',
    'SyncError',
    'SheetReadError',
    'SourceUnavailable',
    'AccessDenied',
    'EmptySource',
    'FormatError',
    'StoreError',
    'IntegrationSyncError',
]
