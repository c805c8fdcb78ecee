"""
Scheduler loop tests: ticks, error survival and shutdown.
"""
import sys
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

# Ensure src/ is on path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / 'src'))

from order_sync import sync_worker
from order_sync.errors import StoreError
from order_sync.models import BatchReport


class TestSyncWorker(unittest.TestCase):

    def test_runs_requested_ticks(self):
        runner = MagicMock()
        runner.run_all = AsyncMock(return_value=BatchReport(total_integrations=1, successful=1))
        sleep = MagicMock()

        passes = sync_worker.run_loop(runner, interval=0, max_passes=3, sleep=sleep)

        self.assertEqual(passes, 3)
        self.assertEqual(runner.run_all.await_count, 3)

    def test_store_error_does_not_stop_loop(self):
        runner = MagicMock()
        runner.run_all = AsyncMock(side_effect=[StoreError('quota'), BatchReport()])

        passes = sync_worker.run_loop(runner, interval=0, max_passes=2, sleep=MagicMock())

        self.assertEqual(passes, 2)
        self.assertEqual(runner.run_all.await_count, 2)

    def test_shutdown_request_stops_loop(self):
        runner = MagicMock()

        async def run_all():
            sync_worker.request_shutdown()
            return BatchReport()

        runner.run_all = run_all
        passes = sync_worker.run_loop(runner, interval=60, sleep=MagicMock())
        self.assertEqual(passes, 1)


if __name__ == '__main__':
    unittest.main()
