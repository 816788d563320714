"""
Deployment collection for releasedrift.

Reads every Director deployment and turns its manifest into a
DeploymentRecord: the manifest identity and version it declares, and the
BOSH releases it uses.
"""

import logging
import re
import threading
from typing import Iterable, List, Optional

import yaml

from ..domain import DeploymentRecord, BoshRelease
from ..errors import ReleaseDriftError, ParseError
from ..template import load_manifest
from .catalog_service import check_cancelled

logger = logging.getLogger(__name__)

# Deployments declare versions as git refs, strip the leading "v"
VERSION_RE = re.compile(r'v(.*)')


def normalize_version(version: str) -> str:
    """Drop the first ``v`` of a declared version (``v12.0`` becomes ``12.0``)."""
    return VERSION_RE.sub(r'\1', version)


def parse_deployment_manifest(name: str, manifest: str) -> DeploymentRecord:
    """
    Build a record from a deployment's raw manifest.

    Raises:
        ParseError: If the manifest is malformed or declares no version
    """
    try:
        data = load_manifest(manifest) or {}
    except yaml.YAMLError as e:
        raise ParseError(f"invalid manifest: {e}") from e
    if not isinstance(data, dict):
        raise ParseError("expected manifest to be a map")

    version = data.get('manifest_version')
    if version is None or str(version) == '':
        raise ParseError("unable to find manifest version")

    releases = data.get('releases') or []
    if not isinstance(releases, list) or not all(isinstance(r, dict) for r in releases):
        raise ParseError("expected manifest releases to be a list of maps")

    return DeploymentRecord(
        deployment=name,
        manifest_name=str(data.get('manifest_name') or name),
        current_version=normalize_version(str(version)),
        releases=tuple(BoshRelease.from_manifest_entry(r) for r in releases),
    )


class DeploymentService:
    """
    Collects live deployment records from the Director.

    Example:
        service = DeploymentService(director, excludes=["^tmp-"])
        for record in service.collect():
            print(record.deployment, record.current_version)
    """

    def __init__(self, director, excludes: Optional[Iterable[str]] = None):
        """
        Initialize DeploymentService.

        Args:
            director: Director capability (see DirectorClient)
            excludes: Regexes of manifest names to leave out
        """
        self.director = director
        self.excludes = [re.compile(e) for e in (excludes or [])]

    def is_excluded(self, name: str) -> bool:
        """Tell whether a manifest name matches one of the exclude filters."""
        return any(e.search(name) for e in self.excludes)

    def collect(self, cancel: Optional[threading.Event] = None) -> List[DeploymentRecord]:
        """
        Read every deployment.

        A deployment whose manifest cannot be fetched or parsed yields an
        errored record; excluded deployments are left out.

        Raises:
            FetchError: If the deployments cannot be listed
            RefreshCancelled: If ``cancel`` is set between two deployments
        """
        records = []
        for deployment in self.director.list_deployments():
            check_cancelled(cancel)
            logger.debug(f"processing bosh deployment '{deployment.name}'")
            try:
                record = parse_deployment_manifest(deployment.name, deployment.manifest())
            except ReleaseDriftError as e:
                logger.error(f"unable to read manifest of deployment '{deployment.name}': {e}")
                records.append(DeploymentRecord(deployment=deployment.name, has_error=True))
                continue

            if self.is_excluded(record.manifest_name):
                logger.debug(f"excluding deployment '{deployment.name}' ({record.manifest_name})")
                continue
            records.append(record)
        return records
