"""
Configuration handling for the jellykeys package.
"""

import os
import logging
import importlib.util
from typing import Any, Optional
from dataclasses import dataclass

from jellykeys.api.jellyfin import ClientConfig

logger = logging.getLogger(__name__)


@dataclass
class JellykeysConfig:
    """Configuration data structure for jellykeys."""

    # Jellyfin server and the account used to manage its keys
    JELLYFIN_ENDPOINT: Optional[str] = None
    JELLYFIN_USERNAME: Optional[str] = None
    JELLYFIN_PASSWORD: Optional[str] = None

    # Client identification sent when logging in (empty means default)
    JELLYFIN_CLIENT_NAME: Optional[str] = None
    JELLYFIN_DEVICE_NAME: Optional[str] = None
    JELLYFIN_DEVICE_ID: Optional[str] = None
    JELLYFIN_CLIENT_VERSION: Optional[str] = None

    # Seconds to wait for each request, None waits forever
    REQUEST_TIMEOUT: Optional[float] = None

    def client_config(self) -> ClientConfig:
        """
        Build the client identification from this configuration.

        Returns:
            ClientConfig: Identification fields, unset ones left to the client defaults
        """
        return ClientConfig(
            client_name=self.JELLYFIN_CLIENT_NAME,
            device_name=self.JELLYFIN_DEVICE_NAME,
            device_id=self.JELLYFIN_DEVICE_ID,
            client_version=self.JELLYFIN_CLIENT_VERSION,
        )


# Global config instance
_config = None


def _load_module(path: str) -> Any:
    spec = importlib.util.spec_from_file_location("user_config", path)
    user_config = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(user_config)
    return user_config


def load_config(config_path: Optional[str] = None) -> JellykeysConfig:
    """
    Load configuration from the specified path or search for 'config.py'.

    Args:
        config_path (Optional[str]): Path to the configuration file

    Returns:
        JellykeysConfig: Configuration object
    """
    global _config

    config = JellykeysConfig()

    if config_path:
        if not os.path.isfile(config_path):
            logger.error(f"Configuration file not found: {config_path}")
        else:
            try:
                update_config_from_module(config, _load_module(config_path))
                logger.info(f"Loaded configuration from {config_path}")
            except Exception as e:
                logger.error(f"Error loading configuration from {config_path}: {e}")
    else:
        # Search for config.py in current directory and parent directories
        current_dir = os.getcwd()
        max_levels = 3

        for _ in range(max_levels):
            potential_config = os.path.join(current_dir, "config.py")
            if os.path.isfile(potential_config):
                try:
                    update_config_from_module(config, _load_module(potential_config))
                    logger.info(f"Loaded configuration from {potential_config}")
                    break
                except Exception as e:
                    logger.error(
                        f"Error loading configuration from {potential_config}: {e}"
                    )

            parent_dir = os.path.dirname(current_dir)
            if parent_dir == current_dir:
                break
            current_dir = parent_dir

    _config = config
    return config


def update_config_from_module(config: JellykeysConfig, module: Any) -> None:
    """
    Update configuration object with values from a module.

    Args:
        config (JellykeysConfig): Configuration object to update
        module (Any): Module containing configuration values
    """
    for key in dir(module):
        if key.startswith("__") or callable(getattr(module, key)):
            continue

        if hasattr(config, key):
            setattr(config, key, getattr(module, key))


def get_config() -> JellykeysConfig:
    """
    Get the current configuration, loading it if necessary.

    Returns:
        JellykeysConfig: Configuration object
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def create_default_config_file(path: str) -> bool:
    """
    Create a default configuration file at the specified path.

    Args:
        path (str): Path to create the configuration file at

    Returns:
        bool: True if successful, False otherwise
    """
    default_config = """# Jellykeys configuration file

# Jellyfin server and the account used to manage API keys.
# Each of these can also come from the environment variable of the same name.
JELLYFIN_ENDPOINT = "http://localhost:8096"
JELLYFIN_USERNAME = ""
JELLYFIN_PASSWORD = ""

# Client identification sent when logging in (leave empty for defaults)
JELLYFIN_CLIENT_NAME = ""
JELLYFIN_DEVICE_NAME = ""
JELLYFIN_DEVICE_ID = ""
JELLYFIN_CLIENT_VERSION = ""

# Seconds to wait for each request (None waits forever)
REQUEST_TIMEOUT = 30
"""

    try:
        with open(path, "w") as f:
            f.write(default_config)
        logger.info(f"Created default configuration file at {path}")
        return True
    except OSError as e:
        logger.error(f"Error creating default configuration file: {e}")
        return False
