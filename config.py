"""
Configuration for the Emeralds Killfeed path repair bot.

All settings come from environment variables.
"""

import logging
import os

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Invalid value {raw!r} for {name}, using default {default}")
        return default
    if value < 0:
        logger.warning(f"Negative value {raw!r} for {name}, using default {default}")
        return default
    return value


DISCORD_TOKEN = os.environ.get("DISCORD_TOKEN")
MONGODB_URI = os.environ.get("MONGODB_URI", "mongodb://localhost:27017")
MONGODB_DB = os.environ.get("MONGODB_DB", "emeralds_killfeed")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

PATH_MONITOR_INTERVAL_MINUTES = _env_float("PATH_MONITOR_INTERVAL_MINUTES", 30.0)
PATH_MONITOR_INITIAL_DELAY_SECONDS = _env_float("PATH_MONITOR_INITIAL_DELAY_SECONDS", 60.0)
PATH_MONITOR_STOP_GRACE_SECONDS = _env_float("PATH_MONITOR_STOP_GRACE_SECONDS", 30.0)

# Seconds
SFTP_CONNECT_TIMEOUT = _env_float("SFTP_CONNECT_TIMEOUT", 30.0)
SFTP_OPERATION_TIMEOUT = _env_float("SFTP_OPERATION_TIMEOUT", 30.0)
