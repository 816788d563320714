"""
Release catalog building for releasedrift.

Builds one ReleaseCatalog per configured source: ranked references,
formatted versions with their expiry times and, for manifest sources, the
BOSH releases of the rendered latest manifest.

A failing stage marks that source's catalog as errored and skips the
remaining stages for it; other sources are always processed.
"""

import dataclasses
import logging
import threading
from typing import Iterable, List, Optional

from ..domain import (
    ReleaseSource,
    ManifestSource,
    ReleaseCatalog,
    Ref,
    Version,
    GENERIC,
    MANIFEST,
)
from ..errors import ReleaseDriftError, NoReleaseFoundError, RefreshCancelled
from .ref_resolver import RefResolver
from .version_formatter import VersionFormatter
from .manifest_renderer import ManifestRenderer, extract_releases

logger = logging.getLogger(__name__)


def create_versions(refs: List[Ref], source: ReleaseSource, formatter: VersionFormatter) -> List[Version]:
    """
    Turn ranked refs into versions.

    ``refs`` must be sorted newest first. Each version expires at the time
    of the next newer one; the newest never expires.
    """
    versions = []
    for idx, ref in enumerate(refs):
        expired_since = refs[idx - 1].time if idx != 0 else 0
        versions.append(Version(
            gitref=ref.ref,
            version=formatter.format(ref.ref, source.formatter),
            time=ref.time,
            expired_since=expired_since,
        ))
    return versions


def check_cancelled(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise RefreshCancelled("refresh cycle cancelled")


class CatalogService:
    """
    Builds release catalogs from the source-control capability.

    Example:
        service = CatalogService(github)
        catalogs = service.build_all_generic(config.generic_releases)
        for catalog in catalogs:
            print(catalog.name, catalog.latest.version if catalog.latest else "-")
    """

    def __init__(
        self,
        github,
        resolver: Optional[RefResolver] = None,
        formatter: Optional[VersionFormatter] = None,
        renderer: Optional[ManifestRenderer] = None,
    ):
        """
        Initialize CatalogService.

        Args:
            github: Source-control capability (see GitHubClient)
            resolver: Reference resolver (created from github if None)
            formatter: Version formatter (creates default if None)
            renderer: Manifest renderer (created from github if None)
        """
        self.github = github
        self.resolver = resolver or RefResolver(github)
        self.formatter = formatter or VersionFormatter()
        self.renderer = renderer or ManifestRenderer(github)

    def _versions(self, source: ReleaseSource) -> List[Version]:
        refs = self.resolver.resolve(source)
        if not refs:
            raise NoReleaseFoundError(f"unable to find any release for {source.full_name}")
        return create_versions(refs, source, self.formatter)

    def build_generic(self, source: ReleaseSource) -> ReleaseCatalog:
        """Build the catalog of a generic release source."""
        catalog = ReleaseCatalog(name=source.name, owner=source.owner, repo=source.repo, kind=GENERIC)
        logger.debug(f"processing generic release '{source.name}' ({source.full_name})")
        try:
            versions = self._versions(source)
        except ReleaseDriftError as e:
            logger.error(f"skipping generic release '{source.name}': {e}")
            return dataclasses.replace(catalog, has_error=True, error=str(e))

        return dataclasses.replace(catalog, versions=tuple(versions), latest=versions[0])

    def build_manifest(self, source: ManifestSource) -> ReleaseCatalog:
        """Build the catalog of a manifest release source, rendering its latest manifest."""
        catalog = ReleaseCatalog(name=source.name, owner=source.owner, repo=source.repo, kind=MANIFEST)
        logger.debug(f"processing manifest release '{source.name}' ({source.full_name})")
        try:
            versions = self._versions(source)
        except ReleaseDriftError as e:
            logger.error(f"skipping manifest release '{source.name}': {e}")
            return dataclasses.replace(catalog, has_error=True, error=str(e))

        latest = versions[0]
        catalog = dataclasses.replace(catalog, versions=tuple(versions), latest=latest)
        if not source.manifest:
            return catalog

        try:
            logger.debug(f"downloading manifest '{source.manifest}' of '{source.name}' at {latest.gitref}")
            content = self.github.download_content(source.owner, source.repo, source.manifest, latest.gitref)
            rendered = self.renderer.render(source, latest.gitref, content)
            # A manifest that failed to render publishes no releases
            releases = () if rendered.failed else extract_releases(rendered.content)
        except ReleaseDriftError as e:
            logger.error(f"unable to render manifest of '{source.name}' at version {latest.version}: {e}")
            return dataclasses.replace(catalog, has_error=True, error=str(e))

        error = '; '.join(rendered.errors) if rendered.errors else None
        return dataclasses.replace(catalog, releases=releases, has_error=rendered.has_error, error=error)

    def build_all_generic(self, sources: Iterable[ReleaseSource],
                          cancel: Optional[threading.Event] = None) -> List[ReleaseCatalog]:
        """
        Build catalogs of generic sources in name order.

        Raises:
            RefreshCancelled: If ``cancel`` is set between two sources
        """
        catalogs = []
        for source in sorted(sources, key=lambda s: s.name):
            check_cancelled(cancel)
            catalogs.append(self.build_generic(source))
        return catalogs

    def build_all_manifest(self, sources: Iterable[ManifestSource],
                           cancel: Optional[threading.Event] = None) -> List[ReleaseCatalog]:
        """
        Build catalogs of manifest sources in name order.

        Raises:
            RefreshCancelled: If ``cancel`` is set between two sources
        """
        catalogs = []
        for source in sorted(sources, key=lambda s: s.name):
            check_cancelled(cancel)
            catalogs.append(self.build_manifest(source))
        return catalogs
