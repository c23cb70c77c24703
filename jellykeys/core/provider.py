"""
Provider for the jellyfin API key resource and data source.
"""
import os
import logging
from typing import Callable, List, Optional

import requests

from jellykeys.api.jellyfin import ClientConfig, JellyfinClient, JellyfinError
from jellykeys.core.config import JellykeysConfig, get_config
from jellykeys.core.resources import (
    API_KEY_TYPE_NAME,
    APIKeyDataSource,
    APIKeyResource,
    ProviderError,
)

logger = logging.getLogger(__name__)


class ProviderConfigurationError(ProviderError):
    """The provider could not build an authenticated client."""


_MISSING_DETAIL = (
    "The provider cannot create the Jellyfin API client as there is a missing or empty value "
    "for the Jellyfin {name}. Set the {name} value in the configuration or use the {env} "
    "environment variable. If either is already set, ensure the value is not empty."
)


class JellyfinProvider:
    """Connects to a Jellyfin server and hands the client to resources and data sources."""

    type_name = "jellyfin"

    def __init__(self, version: str = "dev", config: Optional[JellykeysConfig] = None):
        """
        Args:
            version (str): Provider version, "dev" for local builds
            config (JellykeysConfig, optional): Settings; the global config when omitted
        """
        self.version = version
        self.config = config if config is not None else get_config()
        self.client: Optional[JellyfinClient] = None

    def _resolve(self, name: str, value: Optional[str]) -> Optional[str]:
        env = f"JELLYFIN_{name.upper()}"
        return value or getattr(self.config, env, None) or os.environ.get(env) or None

    def configure(
        self,
        endpoint: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_config: Optional[ClientConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> JellyfinClient:
        """
        Authenticate with the Jellyfin server and keep the client.

        Each setting is taken from the argument, then the configuration file,
        then the JELLYFIN_ENDPOINT, JELLYFIN_USERNAME or JELLYFIN_PASSWORD
        environment variable.

        Returns:
            JellyfinClient: The authenticated client

        Raises:
            ProviderConfigurationError: If a setting is missing or login fails
        """
        settings = {
            "endpoint": self._resolve("endpoint", endpoint),
            "username": self._resolve("username", username),
            "password": self._resolve("password", password),
        }

        missing = [name for name, value in settings.items() if not value]
        if missing:
            details = [
                _MISSING_DETAIL.format(name=name, env=f"JELLYFIN_{name.upper()}")
                for name in missing
            ]
            summary = ", ".join(f"Missing Jellyfin {name.capitalize()}" for name in missing)
            raise ProviderConfigurationError(summary, " ".join(details))

        logger.info(f"Connecting to Jellyfin at {settings['endpoint']}...")
        try:
            self.client = JellyfinClient.authenticate(
                settings["endpoint"],
                settings["username"],
                settings["password"],
                config=client_config or self.config.client_config(),
                session=session,
                timeout=self.config.REQUEST_TIMEOUT,
            )
        except JellyfinError as e:
            logger.error(f"Failed to connect to Jellyfin: {e}")
            raise ProviderConfigurationError(
                "Failed to Authenticate with Jellyfin",
                "The provider failed to authenticate with the Jellyfin server. "
                "Please verify your credentials and ensure the Jellyfin server is accessible. "
                f"Error: {e}",
            ) from e

        return self.client

    def resources(self) -> List[Callable[[JellyfinClient], APIKeyResource]]:
        return [APIKeyResource]

    def data_sources(self) -> List[Callable[[JellyfinClient], APIKeyDataSource]]:
        return [APIKeyDataSource]

    def resource_type_name(self) -> str:
        return f"{self.type_name}_{API_KEY_TYPE_NAME}"

    def get_client(self) -> JellyfinClient:
        if self.client is None:
            raise ProviderConfigurationError(
                "Provider Not Configured",
                "The Jellyfin provider must be configured before resources or data sources are used.",
            )
        return self.client

    def api_key_resource(self) -> APIKeyResource:
        return APIKeyResource(self.get_client())

    def api_key_data_source(self) -> APIKeyDataSource:
        return APIKeyDataSource(self.get_client())
