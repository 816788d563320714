"""
GitHub API client infrastructure for releasedrift.

Provides the source-control capability consumed by the refresh engine:
- List releases and tags of a repository
- Resolve a commit (tag objects often lack a usable date)
- Download a file at a given git reference

Failures are surfaced as FetchError; retry and backoff policy belong to
the caller.
"""

import os
import time
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

import requests

from ..errors import FetchError

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"

# Maximum page size accepted by the GitHub REST API
DEFAULT_PAGE_SIZE = 100

# Warn below this many remaining calls
LOW_RATE_LIMIT = 100


def parse_github_time(value: Optional[str]) -> int:
    """Convert a GitHub ISO-8601 timestamp into epoch seconds (0 if unset)."""
    if not value:
        return 0
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


@dataclass
class RateLimitStatus:
    """Quota reported by the X-RateLimit-* headers of the last response."""
    remaining: int
    limit: int
    reset_time: int  # epoch seconds
    used: int

    @property
    def minutes_until_reset(self) -> int:
        return max(0, (self.reset_time - int(time.time())) // 60)

    @property
    def is_low(self) -> bool:
        """Fewer than LOW_RATE_LIMIT calls left."""
        return self.remaining < LOW_RATE_LIMIT


@dataclass
class GitHubRelease:
    """GitHub release metadata relevant to version tracking."""
    tag_name: str
    prerelease: bool
    draft: bool
    created_at: int

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'GitHubRelease':
        """Create from GitHub API response."""
        return cls(
            tag_name=data.get('tag_name', ''),
            prerelease=bool(data.get('prerelease', False)),
            draft=bool(data.get('draft', False)),
            created_at=parse_github_time(data.get('created_at')),
        )


@dataclass
class GitHubTag:
    """GitHub tag with the sha of the commit it points to."""
    name: str
    sha: str

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'GitHubTag':
        """Create from GitHub API response."""
        commit = data.get('commit') or {}
        return cls(name=data.get('name', ''), sha=commit.get('sha', ''))


@dataclass
class GitHubCommit:
    """GitHub commit with its committer date."""
    sha: str
    committed_at: int

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'GitHubCommit':
        """Create from GitHub API response."""
        commit = data.get('commit') or {}
        committer = commit.get('committer') or {}
        return cls(
            sha=data.get('sha', ''),
            committed_at=parse_github_time(committer.get('date')),
        )


class GitHubClient:
    """
    GitHub REST API client.

    Example:
        client = GitHubClient(token="...")
        for release in client.list_releases("cloudfoundry", "cf-deployment"):
            print(release.tag_name, release.created_at)
    """

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: float = 30.0,
        base_url: str = GITHUB_API_BASE,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize GitHubClient.

        Args:
            token: GitHub token (defaults to RELEASEDRIFT_GITHUB_TOKEN or GITHUB_TOKEN env var)
            timeout: Timeout in seconds applied to every request
            base_url: API base URL (GitHub Enterprise installations differ)
            session: Optional requests session (created if None)
        """
        self.token = token or os.environ.get('RELEASEDRIFT_GITHUB_TOKEN') or os.environ.get('GITHUB_TOKEN')
        self.timeout = timeout
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self._rate_limit_status: Optional[RateLimitStatus] = None

    def _headers(self, accept: str = 'application/vnd.github+json') -> Dict[str, str]:
        headers = {
            'Accept': accept,
            'User-Agent': 'releasedrift',
        }
        if self.token:
            headers['Authorization'] = f'token {self.token}'
        return headers

    def _track_rate_limit(self, headers) -> None:
        if 'X-RateLimit-Remaining' not in headers:
            # GitHub Enterprise instances may disable rate limiting
            return
        try:
            status = RateLimitStatus(
                remaining=int(headers['X-RateLimit-Remaining']),
                limit=int(headers.get('X-RateLimit-Limit', 0)),
                reset_time=int(headers.get('X-RateLimit-Reset', 0)),
                used=int(headers.get('X-RateLimit-Used', 0)),
            )
        except (ValueError, TypeError):
            return

        self._rate_limit_status = status
        if status.is_low:
            logger.warning(
                f"only {status.remaining}/{status.limit} GitHub API calls left, "
                f"quota resets in {status.minutes_until_reset} minutes"
            )

    def get_rate_limit_status(self) -> Optional[RateLimitStatus]:
        """Rate limit status observed on the last API call, if any."""
        return self._rate_limit_status

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None,
             accept: str = 'application/vnd.github+json') -> requests.Response:
        """Issue a GET request, raising FetchError on any failure."""
        try:
            response = self.session.get(
                url, headers=self._headers(accept), params=params, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise FetchError(f"GitHub API request failed for {url}: {e}") from e

        self._track_rate_limit(response.headers)

        if response.status_code != 200:
            raise FetchError(
                f"GitHub API error {response.status_code} for {url}",
                status_code=response.status_code,
            )
        return response

    def _get_paginated(self, endpoint: str) -> List[Dict[str, Any]]:
        """Fetch every page of a list endpoint, following Link headers."""
        url = f"{self.base_url}/{endpoint}"
        params: Optional[Dict[str, Any]] = {'per_page': DEFAULT_PAGE_SIZE}
        items: List[Dict[str, Any]] = []

        while url:
            response = self._get(url, params=params)
            try:
                page = response.json()
            except ValueError as e:
                raise FetchError(f"invalid JSON payload from {url}: {e}") from e
            if not isinstance(page, list):
                raise FetchError(f"unexpected payload from {url}, expected a list")
            items.extend(page)

            url = response.links.get('next', {}).get('url')
            # the next link already carries the query string
            params = None

        return items

    def list_releases(self, owner: str, repo: str) -> List[GitHubRelease]:
        """
        List every release of a repository.

        Raises:
            FetchError: If the listing call fails
        """
        data = self._get_paginated(f"repos/{owner}/{repo}/releases")
        return [GitHubRelease.from_api_response(item) for item in data]

    def list_tags(self, owner: str, repo: str) -> List[GitHubTag]:
        """
        List every tag of a repository.

        Raises:
            FetchError: If the listing call fails
        """
        data = self._get_paginated(f"repos/{owner}/{repo}/tags")
        return [GitHubTag.from_api_response(item) for item in data]

    def get_commit(self, owner: str, repo: str, sha: str) -> GitHubCommit:
        """
        Get a single commit.

        Raises:
            FetchError: If the commit cannot be fetched
        """
        response = self._get(f"{self.base_url}/repos/{owner}/{repo}/commits/{sha}")
        try:
            return GitHubCommit.from_api_response(response.json())
        except ValueError as e:
            raise FetchError(f"invalid JSON payload for commit {sha}: {e}") from e

    def download_content(self, owner: str, repo: str, path: str, ref: str) -> bytes:
        """
        Download the raw content of a file at the given git reference.

        Raises:
            FetchError: If the file cannot be downloaded
        """
        url = f"{self.base_url}/repos/{owner}/{repo}/contents/{path.lstrip('/')}"
        try:
            response = self._get(url, params={'ref': ref}, accept='application/vnd.github.raw')
        except FetchError as e:
            raise FetchError(f"could not download file '{path}' at '{ref}': {e}",
                             status_code=e.status_code) from e
        return response.content
