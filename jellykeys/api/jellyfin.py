"""
Jellyfin API client for managing API keys on a Jellyfin server.
Talks to the REST API directly over a requests session.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

# Default client identification sent with the login request
DEFAULT_CLIENT_NAME = "Terraform"
DEFAULT_DEVICE_NAME = "Terraform Provider"
DEFAULT_DEVICE_ID = "terraform-provider-jellyfin"
DEFAULT_CLIENT_VERSION = "1.0.0"

Timeout = Optional[Union[float, tuple]]


class JellyfinError(Exception):
    """Base class for every error raised by the Jellyfin client."""


class JellyfinRequestError(JellyfinError):
    """Raised when a request cannot be built or sent."""


class JellyfinAuthError(JellyfinError):
    """Raised when username/password authentication fails."""


class JellyfinAPIError(JellyfinError):
    """Raised when the server answers an authorized call with an unexpected status."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"API request failed with status {status_code}: {body}")


class JellyfinDecodeError(JellyfinError):
    """Raised when a response body is not JSON of the expected shape."""


@dataclass
class ClientConfig:
    """Client identification fields. Empty values fall back to the defaults."""

    client_name: Optional[str] = None
    device_name: Optional[str] = None
    device_id: Optional[str] = None
    client_version: Optional[str] = None

    def authorization_header(self) -> str:
        return (
            f'MediaBrowser Client="{self.client_name or DEFAULT_CLIENT_NAME}", '
            f'Device="{self.device_name or DEFAULT_DEVICE_NAME}", '
            f'DeviceId="{self.device_id or DEFAULT_DEVICE_ID}", '
            f'Version="{self.client_version or DEFAULT_CLIENT_VERSION}"'
        )


@dataclass
class AuthenticateResponse:
    access_token: str
    server_id: str = ""
    user_id: str = ""
    user_name: str = ""
    session_id: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthenticateResponse":
        user = data.get("User") or {}
        session = data.get("SessionInfo") or {}
        access_token = data.get("AccessToken") or ""
        if not isinstance(user, dict) or not isinstance(session, dict):
            raise JellyfinDecodeError("failed to decode response: User and SessionInfo must be objects")
        if not isinstance(access_token, str):
            raise JellyfinDecodeError("failed to decode response: AccessToken must be a string")
        return cls(
            access_token=access_token,
            server_id=data.get("ServerId") or "",
            user_id=user.get("Id") or "",
            user_name=user.get("Name") or "",
            session_id=session.get("Id") or "",
        )


@dataclass
class APIKey:
    """A single Jellyfin API key. The access token is its identity."""

    access_token: str
    app_name: str = ""
    date_created: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "APIKey":
        return cls(
            access_token=data.get("AccessToken") or "",
            app_name=data.get("AppName") or "",
            date_created=data.get("DateCreated") or "",
        )


@dataclass
class APIKeyQueryResult:
    items: List[APIKey] = field(default_factory=list)
    total_record_count: int = 0
    start_index: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "APIKeyQueryResult":
        items = data.get("Items") or []
        if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
            raise JellyfinDecodeError("failed to decode response: Items is not a list of objects")
        return cls(
            items=[APIKey.from_dict(item) for item in items],
            total_record_count=data.get("TotalRecordCount") or 0,
            start_index=data.get("StartIndex") or 0,
        )


def _strip_trailing_slash(endpoint: str) -> str:
    if endpoint.endswith("/"):
        return endpoint[:-1]
    return endpoint


def _decode_object(response: requests.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError as e:
        raise JellyfinDecodeError(f"failed to decode response: {e}") from e
    if not isinstance(data, dict):
        raise JellyfinDecodeError(
            f"failed to decode response: expected a JSON object, got {type(data).__name__}"
        )
    return data


class JellyfinClient:
    """Client for the Jellyfin API key endpoints."""

    def __init__(
        self,
        endpoint: str,
        access_token: str,
        session: Optional[requests.Session] = None,
        timeout: Timeout = None,
    ):
        """
        Initialize the client from a known access token. No network call is made.

        Args:
            endpoint (str): Base URL of the Jellyfin server
            access_token (str): Token sent with every request
            session (requests.Session, optional): HTTP transport to use
            timeout (float or tuple, optional): Default deadline for each request
        """
        self._endpoint = _strip_trailing_slash(endpoint)
        self._access_token = access_token
        self._session = session if session is not None else requests.Session()
        self._timeout = timeout

    @classmethod
    def authenticate(
        cls,
        endpoint: str,
        username: str,
        password: str,
        config: Optional[ClientConfig] = None,
        session: Optional[requests.Session] = None,
        timeout: Timeout = None,
    ) -> "JellyfinClient":
        """
        Log in with a username and password and return a client holding
        the issued access token. The credentials are not kept.

        Args:
            endpoint (str): Base URL of the Jellyfin server
            username (str): Jellyfin user name
            password (str): Jellyfin password
            config (ClientConfig, optional): Client identification overrides
            session (requests.Session, optional): HTTP transport, reused by the client
            timeout (float or tuple, optional): Deadline for the login and later calls

        Returns:
            JellyfinClient: Authenticated client

        Raises:
            JellyfinAuthError: If the login fails for any reason
        """
        login_url = f"{_strip_trailing_slash(endpoint)}/Users/AuthenticateByName"
        session = session if session is not None else requests.Session()
        config = config or ClientConfig()

        headers = {
            "Content-Type": "application/json",
            "Authorization": config.authorization_header(),
        }
        auth_data = {"Username": username, "Pw": password}

        try:
            response = session.post(
                login_url,
                headers=headers,
                json=auth_data,
                timeout=timeout,
            )
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Authentication request to {endpoint} failed: {e}")
            raise JellyfinAuthError(f"failed to authenticate: {e}") from e

        if response.status_code != 200:
            raise JellyfinAuthError(
                f"authentication failed with status {response.status_code}: {response.text}"
            )

        try:
            result = AuthenticateResponse.from_dict(_decode_object(response))
        except JellyfinDecodeError as e:
            raise JellyfinAuthError(f"failed to decode auth response: {e}") from e

        if not result.access_token:
            raise JellyfinAuthError("authentication succeeded but no access token returned")

        logger.info(f"Authenticated with Jellyfin at {endpoint} as user {result.user_name or username}")
        return cls(endpoint, result.access_token, session=session, timeout=timeout)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def access_token(self) -> str:
        return self._access_token

    @property
    def session(self) -> requests.Session:
        return self._session

    @property
    def timeout(self) -> Timeout:
        return self._timeout

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        timeout: Timeout = None,
    ) -> requests.Response:
        """Send an authorized request and return the raw response."""
        headers = {"Authorization": f'MediaBrowser Token="{self._access_token}"'}
        logger.debug(f"{method} {path}")
        try:
            return self._session.request(
                method,
                f"{self._endpoint}{path}",
                headers=headers,
                params=params,
                timeout=timeout if timeout is not None else self._timeout,
            )
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Request error ({method} {path}): {e}")
            raise JellyfinRequestError(f"failed to execute request: {e}") from e

    @staticmethod
    def _check_status(response: requests.Response, *accepted: int) -> None:
        if response.status_code not in accepted:
            raise JellyfinAPIError(response.status_code, response.text)

    def get_keys(self, timeout: Timeout = None) -> APIKeyQueryResult:
        """
        Get every API key on the server.

        Returns:
            APIKeyQueryResult: Keys in server order
        """
        response = self._request("GET", "/Auth/Keys", timeout=timeout)
        self._check_status(response, 200)
        return APIKeyQueryResult.from_dict(_decode_object(response))

    def get_key_by_access_token(self, access_token: str, timeout: Timeout = None) -> Optional[APIKey]:
        """
        Get the API key with the given access token.

        Returns:
            Optional[APIKey]: The key, or None if there is no such key
        """
        for key in self.get_keys(timeout=timeout).items:
            if key.access_token == access_token:
                return key
        return None

    get_key = get_key_by_access_token

    def find_key_by_app_name(self, app_name: str, timeout: Timeout = None) -> Optional[APIKey]:
        """
        Get the first API key, in server order, with the given app name.

        App names are not unique, so this may not be the key you expect
        when several keys share a name.

        Returns:
            Optional[APIKey]: The key, or None if there is no such key
        """
        for key in self.get_keys(timeout=timeout).items:
            if key.app_name == app_name:
                return key
        return None

    def create_key(self, app_name: str, timeout: Timeout = None) -> None:
        """
        Create an API key for an application.

        The server does not return the new key; list the keys afterwards
        to find it.
        """
        response = self._request("POST", "/Auth/Keys", params={"app": app_name}, timeout=timeout)
        self._check_status(response, 200, 204)
        logger.debug(f"Created API key for app {app_name!r}")

    def delete_key(self, access_token: str, timeout: Timeout = None) -> None:
        """Revoke the API key with the given access token."""
        response = self._request("DELETE", f"/Auth/Keys/{quote(access_token, safe='')}", timeout=timeout)
        self._check_status(response, 200, 204)
