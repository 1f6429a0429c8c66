"""Configuration management for the IPFS API client."""

import json
import os
import shutil
from pathlib import Path
from typing import Optional

from common.constants import API_FILE_NAME, IPFS_DIR_NAME
from common.logging_config import get_logger

logger = get_logger(__name__)

QUERY_METHODS = ("GET", "POST")


def _env_timeout() -> Optional[float]:
    value = os.environ.get("IPFS_API_TIMEOUT")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid IPFS_API_TIMEOUT={value!r}")
        return None


class Config:
    """Client configuration: environment defaults overridden by an optional JSON file."""

    DEFAULT_CONFIG = {
        "ipfs_path": os.environ.get("IPFS_PATH"),
        "api_auth": os.environ.get("IPFS_API_AUTH"),
        "timeout": _env_timeout(),
        "query_method": os.environ.get("IPFS_API_METHOD", "GET"),
    }

    def __init__(self, config_path: Optional[Path] = None, **overrides):
        """
        Initialize configuration manager.

        Args:
            config_path: Optional path to a JSON config file
            **overrides: Values taking precedence over file and environment
        """
        self.config_path = config_path
        self.data = self._load()
        self.data.update({k: v for k, v in overrides.items() if v is not None})

    def _load(self) -> dict:
        """
        Load configuration from file, falling back to defaults.

        Returns:
            Configuration dictionary
        """
        config = self.DEFAULT_CONFIG.copy()
        if self.config_path is None or not self.config_path.exists():
            return config

        try:
            with open(self.config_path, 'r') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("config root must be a JSON object")
            config.update(data)
            return config
        except (ValueError, OSError) as e:
            backup_path = self.config_path.with_suffix('.json.bak')
            logger.warning(f"Unreadable config {self.config_path} ({e}), using defaults; backup at {backup_path}")
            try:
                shutil.copy(self.config_path, backup_path)
            except OSError as copy_error:
                logger.warning(f"Could not back up config: {copy_error}")
            return self.DEFAULT_CONFIG.copy()

    def get_ipfs_path(self) -> Path:
        """
        Get the IPFS repository directory.

        Returns:
            $IPFS_PATH (or the configured ipfs_path), else ~/.ipfs

        Raises:
            RuntimeError: If no path is configured and the home directory is unknown
        """
        ipfs_path = self.data.get('ipfs_path')
        if ipfs_path:
            return Path(ipfs_path).expanduser()
        return Path.home() / IPFS_DIR_NAME

    def get_api_file(self) -> Path:
        """Path of the multiaddr file the daemon writes on startup."""
        return self.get_ipfs_path() / API_FILE_NAME

    def get_timeout(self) -> Optional[float]:
        """
        Get request timeout in seconds.

        Returns:
            Timeout value in seconds, or None for no timeout
        """
        timeout = self.data.get('timeout')
        return float(timeout) if timeout is not None else None

    def get_auth_header(self) -> dict:
        """
        Get Authorization header for the local daemon.

        Returns:
            Dictionary with Authorization header, empty if none is configured
        """
        api_auth = self.data.get('api_auth')
        if not api_auth:
            return {}
        return {'Authorization': api_auth}

    def get_query_method(self) -> str:
        """
        Get the HTTP method used for non-upload API calls.

        Returns:
            "GET" (default) or "POST", which newer daemons require
        """
        method = str(self.data.get('query_method') or 'GET').upper()
        if method not in QUERY_METHODS:
            logger.warning(f"Unsupported query_method {method!r}, using GET")
            return 'GET'
        return method
