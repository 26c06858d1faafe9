"""
Configuration module for COD Order Desk
Environment-agnostic: Works locally, in Docker, and on Google Cloud
Loads environment variables and validates configuration
"""
import os
import tempfile
from pathlib import Path
from dotenv import load_dotenv

# Get project root directory (parent of order_desk/)
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
    if os.getenv('K_SERVICE'):
        return 'cloud_run'

    if os.getenv('KUBERNETES_SERVICE_HOST'):
        return 'kubernetes'

    if Path('/.dockerenv').exists():
        return 'docker'

    return 'local'

RUNTIME_ENVIRONMENT = detect_environment()

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
            path = Path(tempfile.gettempdir()) / 'order_desk' / folder_name
            path.mkdir(parents=True, exist_ok=True)

    return str(path)

# ═══════════════════════════════════════════════════════════════════
# CONFIGURATION VALUES
# ═══════════════════════════════════════════════════════════════════

# Google Gemini Configuration
GOOGLE_API_KEY = os.getenv('GOOGLE_API_KEY')
GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-2.5-flash')
EXTRACTION_TEMPERATURE = float(os.getenv('EXTRACTION_TEMPERATURE', '0.1'))

# Application Configuration
ALLOWED_IMAGE_FORMATS = os.getenv('ALLOWED_IMAGE_FORMATS', 'jpg,jpeg,png,webp').split(',')
DATA_FOLDER = get_writable_path('data')
EXPORT_FOLDER = get_writable_path('exports')

# Delivery workflow
# Identity stamped on orders at the Delivered transition (not user-entered)
DELIVERY_AGENT_NAME = os.getenv('DELIVERY_AGENT_NAME', 'Agent Rahim')
CANCEL_REASON_OTHER = 'Other'
CANCEL_REASONS = [
    'Customer not available',
    'Phone unreachable',
    'Address incorrect',
    'Refused delivery',
    CANCEL_REASON_OTHER,
]

# History persistence
HISTORY_CAPACITY = int(os.getenv('HISTORY_CAPACITY', '50'))
HISTORY_STORAGE_KEY = os.getenv('HISTORY_STORAGE_KEY', 'order_history')
LOCAL_STORE_FILE = os.getenv('LOCAL_STORE_FILE', str(Path(DATA_FOLDER) / 'local_store.json'))

# Monitoring Configuration
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_DIR = os.getenv('LOG_DIR', str(PROJECT_ROOT / 'logs'))
LOG_FILE_MAX_MB = int(os.getenv('LOG_FILE_MAX_MB', '10'))
LOG_FILE_BACKUP_COUNT = int(os.getenv('LOG_FILE_BACKUP_COUNT', '5'))

# ═══════════════════════════════════════════════════════
# REST API
# ═══════════════════════════════════════════════════════

API_HOST = os.getenv('API_HOST', '0.0.0.0')
API_PORT = int(os.getenv('API_PORT', '8000'))

# Cloud Run injects PORT
_cloud_run_port = os.getenv('PORT')
if _cloud_run_port:
    API_PORT = int(_cloud_run_port)

# CORS configuration (comma-separated origins)
API_CORS_ORIGINS = os.getenv('API_CORS_ORIGINS', 'http://localhost:3000').split(',')


def validate_config():
    """Validate that all required configuration is present"""
    errors = []

    if not GOOGLE_API_KEY:
        errors.append("GOOGLE_API_KEY is not set")

    if HISTORY_CAPACITY < 1:
        errors.append(f"HISTORY_CAPACITY must be positive, got {HISTORY_CAPACITY}")

    if not DELIVERY_AGENT_NAME.strip():
        errors.append("DELIVERY_AGENT_NAME is empty")

    if errors:
        raise ValueError("Configuration errors:\n" + "\n".join(errors))

    return True


if __name__ == "__main__":
    try:
        validate_config()
        print("[OK] Configuration validated successfully")
    except ValueError as e:
        print(f"[FAIL] Configuration validation failed:\n{e}")
