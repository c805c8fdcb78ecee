"""
Sync Worker -- Standalone Scheduler Process

Runs BatchRunner.run_all() every SYNC_INTERVAL_SECONDS until SIGINT/SIGTERM.
Replaces per-integration timers: one loop, one pass per integration per tick.

Usage:
    python run_sync.py --worker
    python -m order_sync.sync_worker   (with src/ on the path)
"""
import asyncio
import signal
import time

import config

from .batch_runner import BatchRunner
from .order_store import SheetsOrderStore

_shutdown_requested = False


def _handle_signal(signum, frame):
    global _shutdown_requested
    print(f"\n[SyncWorker] Received signal {signum}, shutting down gracefully...")
    _shutdown_requested = True


def request_shutdown() -> None:
    global _shutdown_requested
    _shutdown_requested = True


def _sleep_until(deadline: float, sleep=time.sleep) -> None:
    """Sleep in short steps so a shutdown signal is honoured promptly."""
    while not _shutdown_requested:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return
        sleep(min(remaining, 1.0))


def run_loop(runner: BatchRunner, interval: float = None, max_passes: int = None,
             sleep=time.sleep) -> int:
    """
    Poll loop.

    Args:
        runner: BatchRunner to tick
        interval: Seconds between the start of consecutive ticks
        max_passes: Stop after this many ticks (None = until shutdown)
        sleep: Injected for tests

    Returns:
        Number of ticks executed
    """
    global _shutdown_requested
    _shutdown_requested = False
    interval = interval if interval is not None else config.SYNC_INTERVAL_SECONDS

    passes = 0
    last_idle_log = 0.0
    while not _shutdown_requested:
        started = time.monotonic()
        try:
            report = asyncio.run(runner.run_all())
        except Exception as e:
            # Store unreachable while listing integrations; try again next tick
            print(f"[SyncWorker] Error running sync batch: {e}")
        else:
            if report.total_integrations:
                print(f"[SyncWorker] Tick done: {report.successful}/{report.total_integrations} OK, "
                      f"{report.failed} failed.")
            elif started - last_idle_log >= config.WORKER_IDLE_LOG_INTERVAL_SECONDS:
                print("[SyncWorker] Idle -- no auto-sync integrations.")
                last_idle_log = started

        passes += 1
        if max_passes is not None and passes >= max_passes:
            break
        _sleep_until(started + interval, sleep)

    return passes


def main():
    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    print("=" * 60)
    print("SYNC WORKER STARTED")
    print(f"Interval: {config.SYNC_INTERVAL_SECONDS}s")
    print("=" * 60)

    store = SheetsOrderStore()
    run_loop(BatchRunner(store))

    print("[SyncWorker] Shutdown complete.")


if __name__ == '__main__':
    main()
