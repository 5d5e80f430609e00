"""
Label Print Service Configuration
"""

import os

# =============================================================================
# Storage Configuration
# =============================================================================

# Where to store job and printer records (local file-based)
DATA_DIR = os.environ.get('LABELPRINT_DATA_DIR', os.path.expanduser('~/.label_print_service'))

# Root for artifacts written by the file driver
STORAGE_DIR = os.environ.get('LABELPRINT_STORAGE_DIR', os.path.join(DATA_DIR, 'storage'))

# Optional entity catalog: {"item": {"1": "ITM-0001"}, "location": {...}}
CATALOG_PATH = os.environ.get('LABELPRINT_CATALOG_PATH') or None

DEFAULT_ORG_ID = 'system'
DEFAULT_PREFIX = 'printjobs'

# =============================================================================
# Delivery Defaults
# =============================================================================

# Raw socket printers
ZPL_PORT = 9100
TCP_TIMEOUT = float(os.environ.get('LABELPRINT_TCP_TIMEOUT', 5))  # seconds

# IPP printers
IPP_PORT = 631
IPP_TIMEOUT = float(os.environ.get('LABELPRINT_IPP_TIMEOUT', 30))  # seconds

# =============================================================================
# Label Defaults
# =============================================================================

DEFAULT_DPI = 203
DEFAULT_LABEL_SIZE = '50x30mm'

# =============================================================================
# Worker Configuration
# =============================================================================

MAX_ATTEMPTS = int(os.environ.get('LABELPRINT_MAX_ATTEMPTS', 1))
RETRY_BASE_SECONDS = float(os.environ.get('LABELPRINT_RETRY_BASE_SECONDS', 2))

# How often `worker` looks for jobs queued by other processes
POLL_SECONDS = float(os.environ.get('LABELPRINT_POLL_SECONDS', 2))

# =============================================================================
# Logging
# =============================================================================

LOG_LEVEL = os.environ.get('LABELPRINT_LOG_LEVEL', 'INFO').upper()
JSON_LOGS = os.environ.get('LABELPRINT_JSON_LOGS', 'false').lower() in ('1', 'true', 'yes')
