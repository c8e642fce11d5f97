"""
Default configuration for the PRThreads cog.
Config values always win; the environment is only consulted for unset keys.
"""

import logging
import os
from typing import Any, Callable, Mapping, Optional

log = logging.getLogger("red.prthreads.config")

# Default global configuration
DEFAULT_GLOBAL_CONFIG = {
    # Destination
    "channel_id": None,  # Text channel that receives one thread per PR

    # Webhook listener
    "webhook_secret": None,  # Shared secret configured on the GitHub webhook
    "host": "0.0.0.0",
    "port": None,  # Falls back to PORT, then DEFAULT_PORT

    # Thread behaviour
    "request_timeout": 15,  # Seconds allowed for each Discord call
    "auto_archive_minutes": 60,
    "persist_threads": False,  # Keep PR -> thread links in Config across restarts

    # GitHub App (connection check only)
    "github_app_id": None,
    "github_private_key_path": None,
    "github_installation_id": None,
    "github_repo": None,  # owner/name
}

DEFAULT_PORT = 3000

# Custom group holding PR id -> thread links when persistence is enabled
THREADS_GROUP = "pr_threads"
DEFAULT_THREAD_RECORD = {
    "thread_id": None,
    "pr_number": None,
}

# Config key -> (environment variable, cast)
ENV_SETTINGS = {
    "channel_id": ("DISCORD_CHANNEL_ID", int),
    "webhook_secret": ("GITHUB_WEBHOOK_SECRET", str),
    "port": ("PORT", int),
    "github_app_id": ("GITHUB_APP_ID", str),
    "github_private_key_path": ("GITHUB_PRIVATE_KEY_PATH", str),
    "github_installation_id": ("GITHUB_INSTALLATION_ID", str),
}


def resolve_setting(
    value: Any,
    env_name: str,
    environ: Optional[Mapping[str, str]] = None,
    cast: Callable[[str], Any] = str,
) -> Any:
    """
    Resolve a setting from Config, falling back to the environment.

    Args:
        value: The value stored in Config (None or "" when unset)
        env_name: Environment variable consulted when the Config value is unset
        environ: Environment mapping, defaults to os.environ
        cast: Conversion applied to the environment string

    Returns:
        The Config value, the cast environment value, or None
    """
    if value not in (None, ""):
        return value
    environ = os.environ if environ is None else environ
    raw = environ.get(env_name)
    if raw is None or not raw.strip():
        return None
    try:
        return cast(raw.strip())
    except (TypeError, ValueError):
        log.warning("Ignoring %s: %r is not a valid value", env_name, raw)
        return None
