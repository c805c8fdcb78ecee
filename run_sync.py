#!/usr/bin/env python3
"""
Sheet Order Sync - Main Launcher

Usage:
    python run_sync.py                      # one pass over all auto-sync integrations
    python run_sync.py --integration ID     # one pass for a single integration
    python run_sync.py --worker             # poll loop every SYNC_INTERVAL_SECONDS
    python run_sync.py --api                # serve the HTTP sync trigger
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

# Get project root directory
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT / 'src'))


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Sync orders from shared spreadsheets into the order store")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument('--integration', metavar='ID', help='sync a single integration')
    mode.add_argument('--worker', action='store_true', help='run the scheduler loop')
    mode.add_argument('--api', action='store_true', help='serve the FastAPI sync trigger')
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point"""
    args = _parse_args(argv)

    # Import after path is set
    import config
    from utils.logger import get_logger

    print("\n" + "=" * 60)
    print("SHEET ORDER SYNC")
    print("=" * 60)

    try:
        config.validate_config()
        print("[OK] Configuration validated")
    except ValueError as e:
        print(f"[FAIL] {e}")
        return 1

    logger = get_logger(log_level=config.LOG_LEVEL)

    if args.api:
        import uvicorn
        from api.main import create_app

        logger.info(f"REST API on http://{config.API_HOST}:{config.API_PORT} (Swagger: /docs)", component="API")
        uvicorn.run(create_app(), host=config.API_HOST, port=config.API_PORT, log_level="info")
        return 0

    if args.worker:
        from order_sync.sync_worker import main as worker_main
        worker_main()
        return 0

    from order_sync.batch_runner import BatchRunner
    from order_sync.errors import IntegrationSyncError
    from order_sync.order_store import SheetsOrderStore

    runner = BatchRunner(SheetsOrderStore())

    if args.integration:
        try:
            stats = asyncio.run(runner.run_one(args.integration))
        except KeyError:
            print(f"[FAIL] Integration {args.integration} not found")
            return 1
        except IntegrationSyncError as e:
            print(f"[FAIL] {e}")
            return 1
        print(json.dumps(stats.to_dict(), indent=2, ensure_ascii=False))
        return 0

    report = asyncio.run(runner.run_all())
    print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    return 0 if report.failed == 0 else 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n[SyncLauncher] Stopped by user")
        sys.exit(0)
