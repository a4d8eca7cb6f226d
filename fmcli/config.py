"""Configuration management for fmcli"""

import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_USERNAME = "User"
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_BROTLI_QUALITY = 11
DEFAULT_HISTORY_FILE = "~/.fmcli_history"
DEFAULT_LOG_LEVEL = "WARNING"


def _int_from_env(name: str, default: int, minimum: int, maximum: int = None) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("ignoring %s=%r: not an integer", name, raw)
        return default
    if value < minimum or (maximum is not None and value > maximum):
        logger.warning("ignoring %s=%r: out of range", name, raw)
        return default
    return value


class Config:
    """Configuration for the file manager shell"""

    def __init__(self):
        self.username = os.getenv("FM_USERNAME") or DEFAULT_USERNAME
        self.start_directory = os.getenv("FM_START_DIR") or os.path.expanduser("~")
        self.chunk_size = _int_from_env("FM_CHUNK_SIZE", DEFAULT_CHUNK_SIZE, 1)
        self.brotli_quality = _int_from_env(
            "FM_BROTLI_QUALITY", DEFAULT_BROTLI_QUALITY, 0, 11
        )
        self.history_file = os.path.expanduser(
            os.getenv("FM_HISTORY_FILE") or DEFAULT_HISTORY_FILE
        )
        self.log_level = (os.getenv("FM_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()

    @classmethod
    def from_env(cls):
        """Create configuration from environment variables"""
        return cls()

    @classmethod
    def from_args(cls, username: str = None, log_level: str = None):
        """Create configuration from command line arguments"""
        config = cls()
        if username:
            config.username = username
        if log_level:
            config.log_level = log_level.upper()
        return config

    def __repr__(self):
        return (
            f"Config(username={self.username!r}, "
            f"start_directory={self.start_directory!r}, "
            f"chunk_size={self.chunk_size}, log_level={self.log_level})"
        )
