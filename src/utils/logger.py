"""
Structured Logging System for Sheet Order Sync
Provides rotating file logs with immediate flush for real-time monitoring
"""
import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler


class SyncLogger:
    """Centralized logging for the sync engine with rotation and formatting"""

    def __init__(self, name="Order-Sync", log_dir="logs", log_level="INFO",
                 max_mb=10, backup_count=5):
        """
        Initialize logger with rotating file handlers

        Args:
            name: Logger name
            log_dir: Directory for log files
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            max_mb: Size of the main log file before rotation
            backup_count: Rotated main log files to keep
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))

        # Clear any existing handlers
        self.logger.handlers.clear()
        self.logger.propagate = False

        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        log_format = logging.Formatter(
            '[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # 1. Main rotating file handler
        main_handler = RotatingFileHandler(
            log_path / 'order_sync.log',
            maxBytes=max_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding='utf-8'
        )
        main_handler.setLevel(logging.DEBUG)
        main_handler.setFormatter(log_format)
        self.logger.addHandler(main_handler)

        # 2. Error-only log file (5MB per file, keep 3 files)
        error_handler = RotatingFileHandler(
            log_path / 'errors.log',
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(log_format)
        self.logger.addHandler(error_handler)

        # 3. Console handler
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(log_format)
        self.logger.addHandler(console_handler)

    def debug(self, message, component=""):
        """Log debug message"""
        self._log(logging.DEBUG, message, component)

    def info(self, message, component=""):
        """Log info message"""
        self._log(logging.INFO, message, component)

    def warning(self, message, component=""):
        """Log warning message"""
        self._log(logging.WARNING, message, component)

    def error(self, message, component="", exc_info=False):
        """Log error message"""
        self._log(logging.ERROR, message, component, exc_info=exc_info)

    def _log(self, level, message, component="", exc_info=False):
        """Internal logging method with component prefix"""
        if component:
            message = f"[{component}] {message}"

        self.logger.log(level, message, exc_info=exc_info)

        # Force immediate flush
        for handler in self.logger.handlers:
            handler.flush()

    def log_sync_start(self, integration_id, spreadsheet_id, sheet_name):
        """Log the beginning of a sync pass"""
        self.info(
            f"Integration {integration_id} - Sync started for sheet '{sheet_name}' ({spreadsheet_id})",
            component="SyncOrchestrator"
        )

    def log_sync_complete(self, stats):
        """Log the per-pass summary"""
        missing = ', '.join(stats.skipped_by_sku_list) or '-'
        message = (
            f"Integration {stats.integration_id} - Result: "
            f"total={stats.total} new={stats.new_count} "
            f"(likely duplicates={stats.likely_duplicate_count}) "
            f"skipped={stats.skipped_count} "
            f"[existing={stats.skipped_as_existing_count}, "
            f"missing SKUs={missing}, invalid={len(stats.invalid_rows)}]"
        )
        self.info(message, component="SyncOrchestrator")

    def log_row_invalid(self, integration_id, row_index, reason):
        """Log a row that was recorded as invalid"""
        self.warning(
            f"Integration {integration_id} - Row {row_index} invalid: {reason}",
            component="SyncOrchestrator"
        )

    def log_batch_complete(self, report):
        """Log the aggregate result of a run over all integrations"""
        self.info(
            f"Batch finished: {report.successful}/{report.total_integrations} integrations OK, "
            f"{report.failed} failed",
            component="BatchRunner"
        )


# Global logger instance
_global_logger = None

def get_logger(log_level=None):
    """Get or create global logger instance"""
    global _global_logger
    if _global_logger is None:
        import config
        _global_logger = SyncLogger(
            log_dir=config.LOG_FOLDER,
            log_level=log_level or config.LOG_LEVEL,
            max_mb=config.LOG_FILE_MAX_MB,
            backup_count=config.LOG_FILE_BACKUP_COUNT,
        )
    return _global_logger
