"""
BMS Chart Fixer - Configuration
All settings loaded from environment variables with sensible defaults.

Every value can also be placed in a ``.env`` file in the working directory.
Command-line flags override the values defined here.
"""

import os
from typing import Tuple

from dotenv import load_dotenv

# Load environment variables from .env file
_ = load_dotenv()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# ---------------------------------------------------------------------------
# Chart files
# ---------------------------------------------------------------------------


def parse_extensions(raw: str) -> Tuple[str, ...]:
    """Turn ``"bms, .BME"`` into ``(".bms", ".bme")``."""
    exts = []
    for item in raw.split(","):
        item = item.strip().lower()
        if not item:
            continue
        if not item.startswith("."):
            item = "." + item
        exts.append(item)
    return tuple(exts)


CHART_EXTENSIONS = parse_extensions(os.getenv("BMS_EXTENSIONS", ".bms,.bme,.bml,.bmx"))

# Most modern charts are UTF-8; older Japanese charts are usually shift_jis.
CHART_ENCODING = os.getenv("BMS_ENCODING", "utf-8")

# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------
# 0 = errors only, 1 = log every correction
VERBOSE = int(os.getenv("BMS_VERBOSE", "0"))

# Number of charts processed concurrently (1 = sequential)
WORKERS = max(1, int(os.getenv("BMS_WORKERS", "1")))

# Suffix appended to a chart's file name when --backup is used
BACKUP_SUFFIX = os.getenv("BMS_BACKUP_SUFFIX", ".bak")
