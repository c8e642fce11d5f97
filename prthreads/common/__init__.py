"""
Common configuration for the PRThreads cog.
"""

from .config import (
    DEFAULT_GLOBAL_CONFIG,
    DEFAULT_PORT,
    DEFAULT_THREAD_RECORD,
    THREADS_GROUP,
    ENV_SETTINGS,
    resolve_setting,
)

__all__ = [
    "DEFAULT_GLOBAL_CONFIG",
    "DEFAULT_PORT",
    "DEFAULT_THREAD_RECORD",
    "THREADS_GROUP",
    "ENV_SETTINGS",
    "resolve_setting",
]
