"""
BOSH Director API client infrastructure for releasedrift.

Provides the Director capability consumed by the refresh engine: listing
deployments and reading their manifests.

Authentication is modelled as a tagged variant chosen once, at connection
time, from the authentication type the Director advertises on ``/info``:
- BasicCredentials: Director without UAA
- UAAPasswordGrant: UAA with the ``bosh_cli`` client and a user password
- UAAClientCredentials: UAA with a dedicated client id and secret
"""

import os
import time
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, List, Dict, Any, Union

import requests

from ..errors import FetchError

logger = logging.getLogger(__name__)

# UAA client used by the bosh CLI for password grants
BOSH_CLI_CLIENT = 'bosh_cli'

# Renew UAA tokens slightly before they actually expire
TOKEN_EXPIRY_MARGIN = 60


class DirectorAuthError(Exception):
    """Raised when the Director cannot be authenticated against."""


@dataclass(frozen=True)
class BasicCredentials:
    """HTTP basic authentication against a Director without UAA."""
    username: str
    password: str


@dataclass(frozen=True)
class UAAPasswordGrant:
    """UAA resource-owner password grant with the bosh_cli client."""
    uaa_url: str
    username: str
    password: str
    client_id: str = BOSH_CLI_CLIENT


@dataclass(frozen=True)
class UAAClientCredentials:
    """UAA client-credentials grant."""
    uaa_url: str
    client_id: str
    client_secret: str


DirectorAuth = Union[BasicCredentials, UAAPasswordGrant, UAAClientCredentials]


def select_auth(
    info: Dict[str, Any],
    username: str = '',
    password: str = '',
    client_id: str = '',
    client_secret: str = '',
) -> DirectorAuth:
    """
    Select the authentication variant from the Director ``/info`` payload.

    Args:
        info: Decoded ``/info`` response
        username: Director (or UAA user) name
        password: Director (or UAA user) password
        client_id: UAA client id, selects the client-credentials grant
        client_secret: UAA client secret

    Raises:
        DirectorAuthError: If the Director advertises UAA without a usable URL
    """
    user_auth = info.get('user_authentication') or {}
    if user_auth.get('type') != 'uaa':
        return BasicCredentials(username=username, password=password)

    options = user_auth.get('options') or {}
    uaa_url = options.get('url')
    if not isinstance(uaa_url, str) or not uaa_url:
        raise DirectorAuthError(f"expected UAA url '{uaa_url}' to be a string")

    if client_id and client_secret:
        return UAAClientCredentials(uaa_url=uaa_url, client_id=client_id, client_secret=client_secret)
    return UAAPasswordGrant(uaa_url=uaa_url, username=username, password=password)


class UAATokenSession:
    """Obtains and renews UAA access tokens for one authentication variant."""

    def __init__(self, auth: Union[UAAPasswordGrant, UAAClientCredentials],
                 session: requests.Session, timeout: float, verify: Union[bool, str] = True):
        self.auth = auth
        self.session = session
        self.timeout = timeout
        self.verify = verify
        self._access_token: Optional[str] = None
        self._refresh_token: Optional[str] = None
        self._expires_at = 0.0

    def _grant_payload(self) -> Dict[str, str]:
        if isinstance(self.auth, UAAClientCredentials):
            return {'grant_type': 'client_credentials'}
        if self._refresh_token:
            return {'grant_type': 'refresh_token', 'refresh_token': self._refresh_token}
        return {
            'grant_type': 'password',
            'username': self.auth.username,
            'password': self.auth.password,
        }

    def _client_auth(self):
        if isinstance(self.auth, UAAClientCredentials):
            return (self.auth.client_id, self.auth.client_secret)
        return (self.auth.client_id, '')

    def _request_token(self) -> None:
        url = f"{self.auth.uaa_url.rstrip('/')}/oauth/token"
        try:
            response = self.session.post(
                url,
                data=self._grant_payload(),
                auth=self._client_auth(),
                headers={'Accept': 'application/json'},
                timeout=self.timeout,
                verify=self.verify,
            )
        except requests.RequestException as e:
            raise DirectorAuthError(f"UAA token request failed: {e}") from e

        if response.status_code != 200:
            if self._refresh_token:
                # refresh token revoked or expired, start over with the password grant
                self._refresh_token = None
                return self._request_token()
            raise DirectorAuthError(f"UAA token request rejected with status {response.status_code}")

        try:
            payload = response.json()
            access_token = payload['access_token']
            refresh_token = payload.get('refresh_token')
            expires_in = int(payload.get('expires_in', 0))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise DirectorAuthError(f"invalid UAA token response: {e!r}") from e
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._expires_at = time.time() + expires_in - TOKEN_EXPIRY_MARGIN

    def token(self) -> str:
        """Return a valid access token, requesting a new one when needed."""
        if self._access_token is None or time.time() >= self._expires_at:
            self._request_token()
        return self._access_token


class Deployment:
    """A Director deployment whose manifest is fetched on demand."""

    def __init__(self, client: 'DirectorClient', name: str):
        self._client = client
        self.name = name

    def manifest(self) -> str:
        """
        Raw YAML manifest of the deployment.

        Raises:
            FetchError: If the manifest cannot be fetched
        """
        data = self._client.get_json(f"/deployments/{self.name}")
        if not isinstance(data, dict):
            raise FetchError(f"unexpected payload for deployment '{self.name}'")
        manifest = data.get('manifest') or ''
        if not isinstance(manifest, str):
            raise FetchError(f"expected manifest of deployment '{self.name}' to be a string")
        return manifest

    def __repr__(self) -> str:
        return f"Deployment(name={self.name!r})"


class DirectorClient:
    """
    BOSH Director API client.

    Example:
        client = DirectorClient.connect("https://10.0.0.6:25555", username="admin", password="...")
        for deployment in client.list_deployments():
            print(deployment.name)
    """

    def __init__(
        self,
        url: str,
        auth: DirectorAuth,
        ca_cert: Optional[str] = None,
        proxy: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize DirectorClient with an already selected authentication.

        Use ``DirectorClient.connect`` to select the authentication from the
        Director itself.
        """
        self.url = url.rstrip('/')
        self.auth = auth
        self.timeout = timeout
        self.session = session or build_session(proxy)
        self.verify: Union[bool, str] = ca_cert or True
        self._token_session: Optional[UAATokenSession] = None
        if isinstance(auth, (UAAPasswordGrant, UAAClientCredentials)):
            self._token_session = UAATokenSession(auth, self.session, timeout, self.verify)

    @classmethod
    def connect(
        cls,
        url: str,
        username: str = '',
        password: str = '',
        client_id: str = '',
        client_secret: str = '',
        ca_cert: Optional[str] = None,
        proxy: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> 'DirectorClient':
        """
        Query the Director ``/info`` anonymously and build an authenticated client.

        Raises:
            FetchError: If the Director cannot be reached
            DirectorAuthError: If the advertised authentication is unusable
        """
        session = session or build_session(proxy)
        verify = ca_cert or True
        try:
            response = session.get(f"{url.rstrip('/')}/info", timeout=timeout, verify=verify)
        except requests.RequestException as e:
            raise FetchError(f"unable to reach director at {url}: {e}") from e
        if response.status_code != 200:
            raise FetchError(f"director info returned status {response.status_code}",
                             status_code=response.status_code)

        try:
            info = response.json()
        except ValueError as e:
            raise FetchError(f"invalid JSON payload from director info: {e}") from e
        if not isinstance(info, dict):
            raise FetchError("unexpected payload for director info")

        auth = select_auth(info, username, password, client_id, client_secret)
        logger.debug(f"director at {url} uses {type(auth).__name__} authentication")
        client = cls(url, auth, ca_cert=ca_cert, timeout=timeout, session=session)
        client.authenticate()
        return client

    def authenticate(self) -> None:
        """Eagerly obtain a token so that credential errors surface at startup."""
        if self._token_session is not None:
            self._token_session.token()

    def _request_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            'timeout': self.timeout,
            'verify': self.verify,
            'headers': {'Accept': 'application/json'},
        }
        if isinstance(self.auth, BasicCredentials):
            kwargs['auth'] = (self.auth.username, self.auth.password)
        elif self._token_session is not None:
            kwargs['headers']['Authorization'] = f"Bearer {self._token_session.token()}"
        return kwargs

    def get_json(self, path: str) -> Any:
        """
        GET a Director endpoint and decode its JSON payload.

        Raises:
            FetchError: On transport, status or decoding failure
        """
        url = f"{self.url}{path}"
        try:
            response = self.session.get(url, **self._request_kwargs())
        except (requests.RequestException, DirectorAuthError) as e:
            raise FetchError(f"director request failed for {path}: {e}") from e
        if response.status_code != 200:
            raise FetchError(f"director error {response.status_code} for {path}",
                             status_code=response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(f"invalid JSON payload from director for {path}: {e}") from e

    def list_deployments(self) -> List[Deployment]:
        """
        List deployments known to the Director.

        Raises:
            FetchError: If the listing call fails
        """
        data = self.get_json('/deployments')
        if not isinstance(data, list):
            raise FetchError("unexpected payload for deployments listing")
        return [
            Deployment(self, str(item['name']))
            for item in data
            if isinstance(item, dict) and item.get('name')
        ]


def build_session(proxy: Optional[str] = None) -> requests.Session:
    """Build a requests session, routing through ``proxy`` when given."""
    session = requests.Session()
    proxy = proxy or os.environ.get('BOSH_ALL_PROXY')
    if proxy:
        session.proxies = {'http': proxy, 'https': proxy}
    return session


def read_ca_cert(path: Optional[str]) -> Optional[str]:
    """Expand and check a CA certificate path (None when unset)."""
    if not path:
        return None
    expanded = Path(path).expanduser()
    if not expanded.is_file():
        raise FileNotFoundError(f"CA certificate '{path}' not found")
    return str(expanded)
