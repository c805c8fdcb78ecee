"""
API helper functions shared across route modules.
Provides the process-wide order store and batch runner used by the sync routes.
"""
from typing import Optional

_store = None
_runner = None


def get_order_store():
    """
    Return the shared SheetsOrderStore, connecting on first use.

    Routes depend on this through FastAPI's Depends so tests can swap it
    with app.dependency_overrides.
    """
    global _store
    if _store is None:
        from order_sync.order_store import SheetsOrderStore
        _store = SheetsOrderStore()
    return _store


def get_batch_runner():
    """Return the shared BatchRunner bound to the shared store."""
    global _runner
    if _runner is None:
        from order_sync.batch_runner import BatchRunner
        _runner = BatchRunner(get_order_store())
    return _runner


def reset(store: Optional[object] = None) -> None:
    """Drop cached instances (optionally pinning a store). Used on shutdown."""
    global _store, _runner
    _store = store
    _runner = None
