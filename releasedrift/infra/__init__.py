"""
Infrastructure layer for releasedrift.

Contains abstractions for external systems:
- GitHubClient: GitHub REST API access (source-control capability)
- DirectorClient: BOSH Director API access (Director capability)

These provide clean interfaces that can be mocked for testing.
"""

from .github_client import GitHubClient, GitHubRelease, GitHubTag, GitHubCommit, RateLimitStatus
from .director_client import (
    DirectorClient,
    DirectorAuthError,
    Deployment,
    BasicCredentials,
    UAAPasswordGrant,
    UAAClientCredentials,
    select_auth,
)

__all__ = [
    'GitHubClient',
    'GitHubRelease',
    'GitHubTag',
    'GitHubCommit',
    'RateLimitStatus',
    'DirectorClient',
    'DirectorAuthError',
    'Deployment',
    'BasicCredentials',
    'UAAPasswordGrant',
    'UAAClientCredentials',
    'select_auth',
]
