"""
Print Broker Configuration
"""

import os

# =============================================================================
# Server Configuration
# =============================================================================

PORT = int(os.environ.get('PRINT_BROKER_PORT', 3000))
HOST = os.environ.get('PRINT_BROKER_HOST', '127.0.0.1')
DEBUG = os.environ.get('PRINT_BROKER_DEBUG', 'false').lower() == 'true'

LOG_LEVEL = os.environ.get('PRINT_BROKER_LOG_LEVEL', 'INFO').upper()
LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'

# =============================================================================
# Dispatch Defaults
# =============================================================================

PRINT_TIMEOUT = float(os.environ.get('PRINT_BROKER_PRINT_TIMEOUT', 60))  # seconds

# Printer list refresh interval (15 minutes)
REFRESH_INTERVAL = float(os.environ.get('PRINT_BROKER_REFRESH_INTERVAL', 15 * 60))

# Job ids
ID_MIN_LENGTH = 6
ID_MAX_LENGTH = 11
ID_MAX_ATTEMPTS = 512

# Raw network printer (JetDirect) default port
NETWORK_PORT = 9100
REACHABILITY_TIMEOUT = 2  # seconds

# =============================================================================
# Storage Configuration
# =============================================================================

STORAGE_DIR = os.environ.get('PRINT_BROKER_STORAGE_DIR', './storage')


def temp_dir(storage_dir: str = STORAGE_DIR) -> str:
    """Scratch directory for job artifacts."""
    return os.path.join(storage_dir, 'temp', 'files')


def templates_dir(storage_dir: str = STORAGE_DIR) -> str:
    """Persistent template store directory."""
    return os.path.join(storage_dir, 'persistent', 'templates')


def printers_dir(storage_dir: str = STORAGE_DIR) -> str:
    """Persistent printer metadata store directory."""
    return os.path.join(storage_dir, 'persistent', 'printers')


TEMP_DIR = temp_dir()
TEMPLATES_DIR = templates_dir()
PRINTERS_DIR = printers_dir()
