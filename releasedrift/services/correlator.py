"""
Deployment correlation for releasedrift.

Matches each live deployment to its manifest source, locates the version it
runs in that source's history and compares its BOSH releases against the
ones of the latest rendered manifest.
"""

import logging
from typing import Dict, Iterable, List, Tuple

from ..domain import (
    ManifestSource,
    ReleaseCatalog,
    DeploymentRecord,
    DeploymentDrift,
    ComponentDrift,
    STATUS_OK,
    STATUS_NOT_FOUND,
)
from ..errors import NotFoundError

logger = logging.getLogger(__name__)


class DeploymentCorrelator:
    """
    Computes deployment and BOSH release drift.

    Example:
        correlator = DeploymentCorrelator(config.manifest_releases)
        drifts, components = correlator.correlate(records, catalogs)
    """

    def __init__(self, sources: Iterable[ManifestSource]):
        """
        Initialize DeploymentCorrelator.

        Args:
            sources: Manifest sources; matched in name order, first match wins
        """
        self.sources = sorted(sources, key=lambda s: s.name)

    def find_source(self, manifest_name: str) -> ManifestSource:
        """
        First source whose matchers match ``manifest_name``.

        Raises:
            NotFoundError: If no source matches
        """
        for source in self.sources:
            if source.match(manifest_name):
                return source
        raise NotFoundError(f"no manifest release matches '{manifest_name}'")

    def correlate_one(
        self,
        record: DeploymentRecord,
        catalogs: Dict[str, ReleaseCatalog],
    ) -> Tuple[DeploymentDrift, List[ComponentDrift]]:
        """Correlate a single (non errored) deployment record."""
        not_found = DeploymentDrift(
            deployment=record.deployment,
            manifest_name=record.manifest_name,
            current_version=record.current_version,
            latest_version=STATUS_NOT_FOUND,
            status=STATUS_NOT_FOUND,
        )

        try:
            source = self.find_source(record.manifest_name)
        except NotFoundError as e:
            logger.debug(f"deployment '{record.deployment}': {e}")
            return not_found, []

        catalog = catalogs.get(source.name)
        version = catalog.find_version(record.current_version) if catalog else None
        if catalog is None or version is None or catalog.latest is None:
            logger.debug(
                f"deployment '{record.deployment}': version '{record.current_version}' "
                f"not found in manifest release '{source.name}'"
            )
            return not_found, []

        drift = DeploymentDrift(
            deployment=record.deployment,
            manifest_name=catalog.name,
            current_version=version.version,
            latest_version=catalog.latest.version,
            expired_since=version.expired_since,
        )

        components = []
        for release in record.releases:
            latest = catalog.find_release(release.name)
            if latest is None:
                latest_version = STATUS_NOT_FOUND
                expired_since = 0
                status = STATUS_NOT_FOUND
            else:
                latest_version = latest.version
                expired_since = 0 if release.version == latest.version else version.expired_since
                status = STATUS_OK
            components.append(ComponentDrift(
                deployment=record.deployment,
                manifest_name=catalog.name,
                manifest_current=version.version,
                manifest_latest=catalog.latest.version,
                component_name=release.name,
                component_current=release.version,
                component_latest=latest_version,
                expired_since=expired_since,
                status=status,
            ))
        return drift, components

    def correlate(
        self,
        records: Iterable[DeploymentRecord],
        catalogs: Iterable[ReleaseCatalog],
    ) -> Tuple[List[DeploymentDrift], List[ComponentDrift]]:
        """
        Correlate deployment records against manifest catalogs.

        Errored records are skipped: they carry no version to correlate.

        Returns:
            Per-deployment drift and per BOSH release drift
        """
        by_name = {c.name: c for c in catalogs}
        drifts: List[DeploymentDrift] = []
        components: List[ComponentDrift] = []
        for record in records:
            if record.has_error:
                continue
            drift, record_components = self.correlate_one(record, by_name)
            drifts.append(drift)
            components.extend(record_components)
        return drifts, components
