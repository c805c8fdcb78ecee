"""
Integration Manager
Connects user spreadsheets to the sync engine and manages their auto-sync flag
"""
from typing import List, Optional

from utils.logger import get_logger

from .models import Integration, generate_id, utc_now
from .order_store import OrderStore
from .sheet_reader import SpreadsheetReader
from .sync_config import INTEGRATION_ID_PREFIX


class IntegrationManager:
    """CRUD for integrations on top of an OrderStore"""

    def __init__(self, store: OrderStore, reader: SpreadsheetReader = None, logger=None):
        self.store = store
        self.reader = reader or SpreadsheetReader()
        self.logger = logger or get_logger()

    def connect(self, user_id: str, spreadsheet_id: str, sheet_name: str,
                auto_sync: bool = True) -> Integration:
        """
        Register a spreadsheet tab for syncing.

        The sheet is read once first so an unusable sheet is rejected before
        anything is stored.

        Raises:
            ValueError: blank spreadsheet id or sheet name
            SheetReadError: the sheet cannot be read (not shared, missing, empty...)
            StoreError: the integration row could not be written
        """
        spreadsheet_id = (spreadsheet_id or '').strip()
        sheet_name = (sheet_name or '').strip()
        if not spreadsheet_id or not sheet_name:
            raise ValueError('spreadsheet_id and sheet_name are required')

        snapshot = self.reader.read(spreadsheet_id, sheet_name)

        integration = Integration(
            id=generate_id(INTEGRATION_ID_PREFIX),
            user_id=str(user_id),
            spreadsheet_id=spreadsheet_id,
            sheet_name=sheet_name,
            auto_sync=auto_sync,
            created_at=utc_now(),
        )
        self.store.create_integration(integration)
        self.logger.info(
            f"Integration {integration.id} connected for user {user_id}: "
            f"'{sheet_name}' ({len(snapshot)} rows, columns: {', '.join(snapshot.mapped_columns)})",
            component="IntegrationManager",
        )
        return integration

    def set_auto_sync(self, integration_id: str, enabled: bool) -> bool:
        updated = self.store.set_auto_sync(integration_id, enabled)
        if updated:
            self.logger.info(
                f"Integration {integration_id} auto sync {'enabled' if enabled else 'disabled'}",
                component="IntegrationManager",
            )
        return updated

    def list_integrations(self, user_id: Optional[str] = None) -> List[Integration]:
        integrations = self.store.list_integrations()
        if user_id is not None:
            integrations = [i for i in integrations if str(i.user_id) == str(user_id)]
        return integrations

    def get(self, integration_id: str) -> Optional[Integration]:
        return self.store.get_integration(integration_id)

    def delete(self, integration_id: str) -> bool:
        """
        Disconnect an integration. Orders already synced from it are kept.

        Returns:
            False when the integration does not exist
        """
        deleted = self.store.delete_integration(integration_id)
        if deleted:
            self.logger.info(f"Integration {integration_id} deleted", component="IntegrationManager")
        return deleted
