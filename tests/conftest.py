"""Shared fixtures: in-memory GitHub and Director capabilities."""

import logging

import pytest

from releasedrift.errors import FetchError
from releasedrift.infra.github_client import GitHubRelease, GitHubCommit


def release(tag_name, created_at, prerelease=False, draft=False):
    return GitHubRelease(tag_name=tag_name, prerelease=prerelease, draft=draft, created_at=created_at)


class FakeGitHub:
    """Source-control capability backed by dictionaries.

    A value that is an exception instance is raised instead of returned.
    """

    def __init__(self, releases=None, tags=None, commits=None, files=None):
        self.releases = releases or {}   # (owner, repo) -> [GitHubRelease]
        self.tags = tags or {}           # (owner, repo) -> [GitHubTag]
        self.commits = commits or {}     # sha -> committed_at
        self.files = files or {}         # (path, ref) -> bytes
        self.calls = []

    @staticmethod
    def _value(value):
        if isinstance(value, Exception):
            raise value
        return value

    def list_releases(self, owner, repo):
        self.calls.append(('list_releases', owner, repo))
        return list(self._value(self.releases.get((owner, repo), [])))

    def list_tags(self, owner, repo):
        self.calls.append(('list_tags', owner, repo))
        return list(self._value(self.tags.get((owner, repo), [])))

    def get_commit(self, owner, repo, sha):
        self.calls.append(('get_commit', owner, repo, sha))
        if sha not in self.commits:
            raise FetchError(f"GitHub API error 404 for commit {sha}", status_code=404)
        return GitHubCommit(sha=sha, committed_at=self._value(self.commits[sha]))

    def download_content(self, owner, repo, path, ref):
        self.calls.append(('download_content', owner, repo, path, ref))
        if (path, ref) not in self.files:
            raise FetchError(f"could not download file '{path}' at '{ref}'", status_code=404)
        content = self._value(self.files[(path, ref)])
        return content.encode('utf-8') if isinstance(content, str) else content


class FakeDeployment:
    def __init__(self, name, manifest):
        self.name = name
        self._manifest = manifest

    def manifest(self):
        if isinstance(self._manifest, Exception):
            raise self._manifest
        return self._manifest


class FakeDirector:
    """Director capability listing a fixed set of deployments."""

    def __init__(self, deployments=None, error=None):
        self.deployments = deployments or []
        self.error = error

    def list_deployments(self):
        if self.error is not None:
            raise self.error
        return list(self.deployments)


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture(autouse=True)
def reset_releasedrift_logging():
    """Drop handlers installed by setup_logging so later tests do not write to closed streams."""
    yield
    logger = logging.getLogger('releasedrift')
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logging.getLogger('releasedrift.infra.director_client').setLevel(logging.NOTSET)
