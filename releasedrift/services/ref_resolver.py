"""
Reference discovery for releasedrift.

Lists the releases (and optionally tags) of a source repository and ranks
them newest first.
"""

import logging
from typing import List

from ..domain import ReleaseSource, Ref, RELEASE, PRE_RELEASE, DRAFT_RELEASE, TAG
from ..errors import FetchError
from ..infra.github_client import GitHubRelease

logger = logging.getLogger(__name__)


def accepts_release(release: GitHubRelease, source: ReleaseSource) -> bool:
    """
    Tell whether a release matches the source's accepted types.

    The three conditions are evaluated independently and OR-ed: a source
    accepting only ``release`` also keeps drafts that are not pre-releases
    and pre-releases that are not drafts, because their other flag equals
    the (false) acceptance of its type.
    """
    return (
        release.prerelease == source.has_type(PRE_RELEASE)
        or release.draft == source.has_type(DRAFT_RELEASE)
        or (not release.prerelease and not release.draft and source.has_type(RELEASE))
    )


class RefResolver:
    """
    Discovers candidate references of a release source.

    Example:
        resolver = RefResolver(GitHubClient(token=...))
        refs = resolver.resolve(source)
        latest = refs[0] if refs else None
    """

    def __init__(self, github):
        """
        Initialize RefResolver.

        Args:
            github: Source-control capability (see GitHubClient)
        """
        self.github = github

    def resolve(self, source: ReleaseSource) -> List[Ref]:
        """
        List accepted references of ``source``, newest first.

        Returns an empty list when nothing matches; deciding whether that is
        an error belongs to the caller.

        Raises:
            FetchError: If listing releases or tags fails
        """
        refs: List[Ref] = []

        releases = self.github.list_releases(source.owner, source.repo)
        for release in releases:
            if accepts_release(release, source):
                refs.append(Ref(release.tag_name, release.created_at))
        logger.debug(f"{source.full_name}: kept {len(refs)}/{len(releases)} releases")

        if source.has_type(TAG):
            refs.extend(self._resolve_tags(source))

        # stable sort, equal timestamps keep their listing order
        refs.sort(key=lambda r: r.time, reverse=True)

        if source.deduplicate:
            refs = deduplicate(refs)
        return refs

    def _resolve_tags(self, source: ReleaseSource) -> List[Ref]:
        """Tags with the committer date of the commit they point to."""
        refs = []
        for tag in self.github.list_tags(source.owner, source.repo):
            # tag objects rarely carry a usable date, use the commit's
            try:
                commit = self.github.get_commit(source.owner, source.repo, tag.sha)
            except FetchError as e:
                logger.warning(f"{source.full_name}: skipping tag '{tag.name}': {e}")
                continue
            refs.append(Ref(tag.name, commit.committed_at))
        return refs


def deduplicate(refs: List[Ref]) -> List[Ref]:
    """Keep the first occurrence of each reference name."""
    seen = set()
    unique = []
    for ref in refs:
        if ref.ref in seen:
            continue
        seen.add(ref.ref)
        unique.append(ref)
    return unique
