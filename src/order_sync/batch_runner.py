"""
Batch Runner
Runs the orchestrator over every auto-sync integration and aggregates a
BatchReport. One integration failing never stops the others.
"""
import asyncio
from typing import Iterable, Optional

from utils.logger import get_logger

from .errors import IntegrationSyncError
from .models import BatchReport, Integration, IntegrationResult, SyncStats
from .orchestrator import SyncOrchestrator
from .order_store import OrderStore


class BatchRunner:
    """Sequential outer loop over integrations"""

    def __init__(self, store: OrderStore, orchestrator: SyncOrchestrator = None, logger=None):
        self.store = store
        self.orchestrator = orchestrator or SyncOrchestrator(store)
        self.logger = logger or get_logger()

    async def run_all(self, integrations: Optional[Iterable[Integration]] = None) -> BatchReport:
        """
        Sync every integration flagged for automatic sync.

        Args:
            integrations: Descriptors to run; loaded from the store when None.
                Entries with auto_sync disabled are ignored either way.

        Returns:
            BatchReport with one IntegrationResult per integration
        """
        if integrations is None:
            integrations = await asyncio.to_thread(self.store.list_integrations, auto_sync_only=True)
        targets = [i for i in integrations if i.auto_sync]

        report = BatchReport(total_integrations=len(targets))
        for integration in targets:
            report.add(await self._run_isolated(integration))

        self.logger.log_batch_complete(report)
        return report

    async def run_one(self, integration_id: str) -> SyncStats:
        """
        Sync a single integration regardless of its auto-sync flag.

        Raises:
            KeyError: unknown integration id
            IntegrationSyncError: the pass was aborted
        """
        integration = await asyncio.to_thread(self.store.get_integration, integration_id)
        if integration is None:
            raise KeyError(integration_id)
        return await self.orchestrator.run_sync(integration)

    async def _run_isolated(self, integration: Integration) -> IntegrationResult:
        try:
            stats = await self.orchestrator.run_sync(integration)
            return IntegrationResult(integration_id=integration.id, stats=stats)
        except IntegrationSyncError as e:
            self.logger.error(str(e), component="BatchRunner")
            return IntegrationResult(integration_id=integration.id, error=str(e))
        except Exception as e:
            wrapped = IntegrationSyncError(integration.id, e)
            self.logger.error(str(wrapped), component="BatchRunner", exc_info=True)
            return IntegrationResult(integration_id=integration.id, error=str(wrapped))
