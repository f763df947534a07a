"""
config.py
- Defines global configuration values derived from environment variables.
- Used by the listener loop, the notifier, the BIG-IP route sync and the API.
"""

import os
import sys

from loguru import logger

from swarm_listener.core.constants import DEFAULT_BIGIP_KEY_FILE


def get_int_env(name, default):
    """Parse an integer environment variable, falling back to `default` on bad input."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"[config] Invalid integer for {name}={raw!r}, using {default}")
        return default


def get_bool_env(name, default=False):
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def get_list_env(*names):
    """
    Return the comma-separated URL list held by the first of `names` that is set.

    The newer DF_NOTIFY_* variables win over the legacy DF_NOTIF_* spelling.
    """
    for name in names:
        raw = os.getenv(name)
        if raw:
            return [item.strip() for item in raw.split(",") if item.strip()]
    return []


# --- Runtime Behavior Flags ---
DEBUG = get_bool_env("DEBUG")
LOG_LEVEL = "DEBUG" if DEBUG else "INFO"

# --- Reconciliation Loop ---
INTERVAL = get_int_env("DF_INTERVAL", 5)
RETRY = get_int_env("DF_RETRY", 50)
RETRY_INTERVAL = get_int_env("DF_RETRY_INTERVAL", 5)

# --- Notification Targets ---
CREATE_SERVICE_URLS = get_list_env("DF_NOTIFY_CREATE_SERVICE_URL", "DF_NOTIF_CREATE_SERVICE_URL")
REMOVE_SERVICE_URLS = get_list_env("DF_NOTIFY_REMOVE_SERVICE_URL", "DF_NOTIF_REMOVE_SERVICE_URL")
NOTIFY_TIMEOUT = get_int_env("DF_NOTIFY_TIMEOUT", 10)

# --- BIG-IP Route Sync ---
CONFIG_API = os.getenv("DF_CONFIG_API", "")
BIGIP_KEY_FILE = os.getenv("DF_BIGIP_KEY_FILE") or DEFAULT_BIGIP_KEY_FILE
BIGIP_ENABLED = get_bool_env("DF_BIGIP_ENABLED", True)
BIGIP_TIMEOUT = get_int_env("DF_BIGIP_TIMEOUT", 10)

# --- Docker & API ---
DOCKER_HOST = os.getenv("DF_DOCKER_HOST", "")
LISTENER_PORT = get_int_env("DF_LISTENER_PORT", 8080)
SENTRY_DSN = os.getenv("SENTRY_DSN")


def configure_logging(level=LOG_LEVEL):
    """Install the single stderr sink used by every component."""
    logger.remove()
    logger.add(
        sink=sys.stderr,
        level=level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
               "<level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
               "<level>{message}</level>",
        colorize=True,
    )
