"""
The jellyfin_api_key resource and data source.

Both copy what the Jellyfin client returns into an APIKeyState record.
The client is passed in at construction.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Optional

from jellykeys.api.jellyfin import APIKey, JellyfinClient, JellyfinError

logger = logging.getLogger(__name__)

API_KEY_TYPE_NAME = "api_key"


class ProviderError(Exception):
    """Error reported to the user as a summary plus a detailed explanation."""

    def __init__(self, summary: str, detail: str):
        self.summary = summary
        self.detail = detail
        super().__init__(f"{summary}: {detail}")


class ResourceError(ProviderError):
    """A lifecycle step failed."""


class APIKeyNotFoundError(ProviderError):
    """A data source lookup matched no key."""


class InvalidLookupError(ProviderError):
    """A data source lookup was given neither or both lookup attributes."""


@dataclass
class APIKeyState:
    """Stored state of one API key. The id is the access token."""

    id: str
    app_name: Optional[str] = None
    access_token: Optional[str] = None
    date_created: Optional[str] = None

    @classmethod
    def from_key(cls, key: APIKey) -> "APIKeyState":
        return cls(
            id=key.access_token,
            app_name=key.app_name,
            access_token=key.access_token,
            date_created=key.date_created,
        )

    def to_dict(self, redact: bool = True) -> Dict[str, Optional[str]]:
        """
        Convert the state to a dictionary.

        Args:
            redact (bool): Mask the token values, which are secrets

        Returns:
            dict: State attributes
        """
        data = asdict(self)
        if redact:
            for name in ("id", "access_token"):
                if data[name]:
                    data[name] = mask_token(data[name])
        return data


def mask_token(token: str) -> str:
    """Hide all but the last four characters of a token."""
    if len(token) <= 4:
        return "*" * len(token)
    return "*" * (len(token) - 4) + token[-4:]


class APIKeyResource:
    """Manages a Jellyfin API key."""

    def __init__(self, client: JellyfinClient):
        self.client = client

    def create(self, app_name: str) -> APIKeyState:
        """
        Create an API key and return its state.

        The server does not say which key it created, so the keys are listed
        before and after and the new one is the key whose token was not there
        before and whose app name matches.

        Args:
            app_name (str): Name of the application using the key

        Returns:
            APIKeyState: State of the new key

        Raises:
            ResourceError: If the key cannot be created or found afterwards
        """
        logger.debug(f"Creating API key for app {app_name!r}")

        try:
            existing_keys = self.client.get_keys()
        except JellyfinError as e:
            raise ResourceError("Client Error", f"Unable to list existing API keys: {e}") from e

        existing_tokens = {key.access_token for key in existing_keys.items}

        try:
            self.client.create_key(app_name)
        except JellyfinError as e:
            raise ResourceError("Client Error", f"Unable to create API key: {e}") from e

        try:
            new_keys = self.client.get_keys()
        except JellyfinError as e:
            raise ResourceError("Client Error", f"Unable to list API keys after creation: {e}") from e

        for key in new_keys.items:
            if key.access_token not in existing_tokens and key.app_name == app_name:
                logger.info(f"Created API key for app {app_name!r}")
                return APIKeyState.from_key(key)

        raise ResourceError("Client Error", "Unable to find the newly created API key")

    def read(self, state: APIKeyState) -> Optional[APIKeyState]:
        """
        Refresh the state of a key from the server.

        Returns:
            Optional[APIKeyState]: Refreshed state, or None if the key no longer
            exists and should be removed from state
        """
        try:
            key = self.client.get_key_by_access_token(state.id)
        except JellyfinError as e:
            raise ResourceError("Client Error", f"Unable to read API key: {e}") from e

        if key is None:
            logger.info(f"API key {mask_token(state.id)} no longer exists, removing from state")
            return None

        return APIKeyState.from_key(key)

    def update(self, planned: APIKeyState) -> APIKeyState:
        """Keys cannot be changed in place; a new app name replaces the key."""
        logger.debug("Update called for API key resource (no-op)")
        return planned

    def delete(self, state: APIKeyState) -> None:
        """Revoke the key. The access token, not the id, names it on the server."""
        access_token = state.access_token or state.id
        logger.debug(f"Deleting API key {mask_token(access_token)}")

        try:
            self.client.delete_key(access_token)
        except JellyfinError as e:
            raise ResourceError("Client Error", f"Unable to delete API key: {e}") from e

        logger.info(f"Deleted API key {mask_token(access_token)}")

    def import_state(self, identifier: str) -> APIKeyState:
        """Start tracking an existing key by its access token. A read fills in the rest."""
        return APIKeyState(id=identifier)


class APIKeyDataSource:
    """Looks up a Jellyfin API key by app name or access token."""

    def __init__(self, client: JellyfinClient):
        self.client = client

    def read(self, app_name: Optional[str] = None, access_token: Optional[str] = None) -> APIKeyState:
        """
        Look up a single key. Exactly one of app_name and access_token must be given.

        When looking up by app name and several keys share it, the first one
        the server lists is returned.

        Raises:
            InvalidLookupError: If neither or both lookup attributes are given
            APIKeyNotFoundError: If no key matches
            ResourceError: If the server cannot be queried
        """
        if app_name is None and access_token is None:
            raise InvalidLookupError(
                "Missing Required Attribute",
                "Either 'app_name' or 'access_token' must be provided to look up an API key.",
            )
        if app_name is not None and access_token is not None:
            raise InvalidLookupError(
                "Conflicting Attributes",
                "Only one of 'app_name' or 'access_token' may be provided to look up an API key.",
            )

        try:
            if access_token is not None:
                key = self.client.get_key_by_access_token(access_token)
            else:
                key = self.client.find_key_by_app_name(app_name)
        except JellyfinError as e:
            raise ResourceError("Client Error", f"Unable to read API key: {e}") from e

        if key is None:
            raise APIKeyNotFoundError("API Key Not Found", "The specified API key was not found.")

        return APIKeyState.from_key(key)
