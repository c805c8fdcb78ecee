"""
Configuration module for Sheet Order Sync
Environment-agnostic: Works locally, in Docker, and on Google Cloud
Loads environment variables and validates configuration
"""
import os
import tempfile
from pathlib import Path
from dotenv import load_dotenv

# Get project root directory (parent of src/)
PROJECT_ROOT = Path(__file__).parent.parent

# Load environment variables from .env file (if exists - local dev only)
env_file = PROJECT_ROOT / '.env'
if env_file.exists():
    load_dotenv(env_file)

# ═══════════════════════════════════════════════════════════════════
# ENVIRONMENT DETECTION
# ═══════════════════════════════════════════════════════════════════

def detect_environment() -> str:
    """
    Detect which environment we're running in

    Returns:
        'cloud_run', 'kubernetes', 'docker', or 'local'
    """
    # Cloud Run sets K_SERVICE
    if os.getenv('K_SERVICE'):
        return 'cloud_run'

    # Kubernetes sets KUBERNETES_SERVICE_HOST
    if os.getenv('KUBERNETES_SERVICE_HOST'):
        return 'kubernetes'

    # Docker typically has /.dockerenv file
    if Path('/.dockerenv').exists():
        return 'docker'

    if os.getenv('GOOGLE_CLOUD_PROJECT') or os.getenv('GCP_PROJECT'):
        return 'cloud_run'

    return 'local'

RUNTIME_ENVIRONMENT = detect_environment()

# ═══════════════════════════════════════════════════════════════════
# CREDENTIAL RESOLUTION - order store workbook access
# ═══════════════════════════════════════════════════════════════════

_credentials_path = None  # Lazy loaded

def resolve_credentials() -> str:
    """
    Resolve Google Sheets credentials for the order store workbook.
    Priority order:
    1. Local file (GOOGLE_SHEETS_CREDENTIALS_FILE env var or default path)
    2. JSON string in environment variable (GOOGLE_SHEETS_CREDENTIALS_JSON)
    3. Application Default Credentials (for Workload Identity)

    The source spreadsheets themselves are public exports and need no credentials.

    Returns:
        Path to credentials JSON file (may be temp file for JSON string sources)
        None if using Application Default Credentials
    """
    creds_file = os.getenv('GOOGLE_SHEETS_CREDENTIALS_FILE')
    if creds_file:
        if not os.path.isabs(creds_file):
            creds_file = str(PROJECT_ROOT / creds_file)
        if os.path.exists(creds_file):
            print(f"[CONFIG] Using credentials file: {creds_file}")
            return creds_file

    default_path = PROJECT_ROOT / 'config' / 'credentials.json'
    if default_path.exists():
        print(f"[CONFIG] Using default credentials file: {default_path}")
        return str(default_path)

    creds_json = os.getenv('GOOGLE_SHEETS_CREDENTIALS_JSON')
    if creds_json:
        temp_path = Path(tempfile.gettempdir()) / 'order_sync_credentials.json'
        temp_path.write_text(creds_json)
        print("[CONFIG] Using credentials from environment variable (GOOGLE_SHEETS_CREDENTIALS_JSON)")
        return str(temp_path)

    if RUNTIME_ENVIRONMENT in ('cloud_run', 'kubernetes'):
        print("[CONFIG] Using Application Default Credentials (Workload Identity)")
        return None  # Signal to use ADC

    raise ValueError(
        "No valid credentials source found. Set one of:\n"
        "  - GOOGLE_SHEETS_CREDENTIALS_FILE (path to JSON file)\n"
        "  - GOOGLE_SHEETS_CREDENTIALS_JSON (JSON string)\n"
        "  - Place credentials.json in config/ folder"
    )

def get_credentials_path():
    """Get credentials path (lazy loaded)"""
    global _credentials_path
    if _credentials_path is None:
        _credentials_path = resolve_credentials()
    return _credentials_path

# ═══════════════════════════════════════════════════════════════════
# WRITABLE PATHS - Handle containerized environments
# ═══════════════════════════════════════════════════════════════════

def get_writable_path(folder_name: str) -> str:
    """Get a writable path that works in all environments"""
    env_path = os.getenv(folder_name.upper() + '_FOLDER')
    if env_path:
        if os.path.isabs(env_path):
            path = Path(env_path)
        else:
            path = PROJECT_ROOT / env_path
    else:
        path = PROJECT_ROOT / folder_name

    # In containers, /app might be read-only; use /tmp as fallback
    if not path.exists():
        try:
            path.mkdir(parents=True, exist_ok=True)
        except (PermissionError, OSError):
            path = Path(tempfile.gettempdir()) / 'order_sync' / folder_name
            path.mkdir(parents=True, exist_ok=True)

    return str(path)

# ═══════════════════════════════════════════════════════════════════
# ORDER STORE (Google Sheets workbook)
# ═══════════════════════════════════════════════════════════════════

ORDER_STORE_SHEET_ID = os.getenv('ORDER_STORE_SHEET_ID')
ORDERS_SHEET_NAME = os.getenv('ORDERS_SHEET_NAME', 'Orders')
PRODUCTS_SHEET_NAME = os.getenv('PRODUCTS_SHEET_NAME', 'Products')
INTEGRATIONS_SHEET_NAME = os.getenv('INTEGRATIONS_SHEET_NAME', 'Integrations')

ORDERS_COLUMNS = [
    'Order_ID',
    'Integration_ID',
    'User_ID',
    'Sheet_Order_ID',
    'Customer_Name',
    'Phone',
    'Shipping_Address',
    'City',
    'Product_ID',
    'SKU',
    'Quantity',
    'Unit_Price',
    'Total_Amount',
    'Status',
    'Created_At',
]

PRODUCTS_COLUMNS = [
    'Product_ID',
    'SKU',
    'Name',
    'Unit_Price',
]

INTEGRATIONS_COLUMNS = [
    'Integration_ID',
    'User_ID',
    'Spreadsheet_ID',
    'Sheet_Name',
    'Auto_Sync',
    'Last_Sync_At',
    'Created_At',
]

# Product catalog is re-read from the store at most this often
PRODUCT_CACHE_TTL_SECONDS = int(os.getenv('PRODUCT_CACHE_TTL_SECONDS', '300'))

# ═══════════════════════════════════════════════════════════════════
# SPREADSHEET SOURCE (public export)
# ═══════════════════════════════════════════════════════════════════

SHEET_EXPORT_BASE_URL = os.getenv(
    'SHEET_EXPORT_BASE_URL', 'https://docs.google.com/spreadsheets/d'
)
SHEET_EXPORT_FORMAT = os.getenv('SHEET_EXPORT_FORMAT', 'csv').lower()  # 'csv' or 'json'
SHEET_FETCH_TIMEOUT_SECONDS = float(os.getenv('SHEET_FETCH_TIMEOUT_SECONDS', '20'))

# ═══════════════════════════════════════════════════════════════════
# SYNC ENGINE
# ═══════════════════════════════════════════════════════════════════

# Country code prepended to domestic phone numbers
DEFAULT_COUNTRY_CODE = os.getenv('DEFAULT_COUNTRY_CODE', '961')

# Probable-duplicate window: same phone (+ same product) within N days
DUPLICATE_WINDOW_DAYS = int(os.getenv('DUPLICATE_WINDOW_DAYS', '7'))
DUPLICATE_REQUIRE_SAME_PRODUCT = os.getenv('DUPLICATE_REQUIRE_SAME_PRODUCT', 'true').lower() == 'true'

# Row-level concurrency (product lookups + inserts in flight per pass)
SYNC_MAX_CONCURRENCY = int(os.getenv('SYNC_MAX_CONCURRENCY', '5'))
SYNC_PASS_TIMEOUT_SECONDS = float(os.getenv('SYNC_PASS_TIMEOUT_SECONDS', '300'))

# Scheduler loop (sync_worker)
SYNC_INTERVAL_SECONDS = int(os.getenv('SYNC_INTERVAL_SECONDS', '300'))  # 5 minutes
WORKER_IDLE_LOG_INTERVAL_SECONDS = int(os.getenv('WORKER_IDLE_LOG_INTERVAL_SECONDS', '60'))

# ═══════════════════════════════════════════════════════════════════
# HTTP TRIGGER (FastAPI)
# ═══════════════════════════════════════════════════════════════════

# Shared secret expected as "Authorization: Bearer <SYNC_SECRET>"
SYNC_SECRET = os.getenv('SYNC_SECRET', '')

API_PORT = int(os.getenv('API_PORT', '8000'))
API_HOST = os.getenv('API_HOST', '0.0.0.0')

# Cloud Run sets PORT to the single port it routes traffic to
_cloud_run_port = os.getenv('PORT')
if _cloud_run_port:
    API_PORT = int(_cloud_run_port)

# ═══════════════════════════════════════════════════════════════════
# MONITORING
# ═══════════════════════════════════════════════════════════════════

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FILE_MAX_MB = int(os.getenv('LOG_FILE_MAX_MB', '10'))
LOG_FILE_BACKUP_COUNT = int(os.getenv('LOG_FILE_BACKUP_COUNT', '5'))
LOG_FOLDER = get_writable_path('logs')


def validate_config():
    """Validate that all required configuration is present"""
    errors = []

    print(f"[CONFIG] Runtime environment: {RUNTIME_ENVIRONMENT}")

    if not ORDER_STORE_SHEET_ID:
        errors.append("ORDER_STORE_SHEET_ID is not set")

    if SHEET_EXPORT_FORMAT not in ('csv', 'json'):
        errors.append(f"SHEET_EXPORT_FORMAT must be 'csv' or 'json', got '{SHEET_EXPORT_FORMAT}'")

    if DUPLICATE_WINDOW_DAYS < 0:
        errors.append("DUPLICATE_WINDOW_DAYS must not be negative")

    if SYNC_MAX_CONCURRENCY < 1:
        errors.append("SYNC_MAX_CONCURRENCY must be at least 1")

    try:
        creds_path = get_credentials_path()
        if creds_path and not os.path.exists(creds_path):
            errors.append(f"Google Sheets credentials file not found: {creds_path}")
    except ValueError as e:
        errors.append(str(e))

    if errors:
        raise ValueError("Configuration errors:\n" + "\n".join(errors))

    return True


if __name__ == "__main__":
    try:
        validate_config()
        print("[OK] Configuration validated successfully")
    except ValueError as e:
        print(f"[FAIL] Configuration validation failed:\n{e}")
