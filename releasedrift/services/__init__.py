"""
Service layer for releasedrift.

Contains the refresh engine, orchestrating domain objects and infrastructure:
- RefResolver: Reference discovery and ranking
- VersionFormatter: Reference name to display version
- ManifestRenderer: Ops and variables applied to manifests
- CatalogService: Per-source version history
- DeploymentService: Live deployment records
- DeploymentCorrelator: Deployment and BOSH release drift
- SnapshotBuilder / RefreshScheduler: Refresh cycles and publication
"""

from .ref_resolver import RefResolver
from .version_formatter import VersionFormatter
from .manifest_renderer import ManifestRenderer, extract_releases
from .catalog_service import CatalogService, create_versions
from .deployment_service import DeploymentService
from .correlator import DeploymentCorrelator
from .scheduler import SnapshotBuilder, RefreshScheduler

__all__ = [
    'RefResolver',
    'VersionFormatter',
    'ManifestRenderer',
    'extract_releases',
    'CatalogService',
    'create_versions',
    'DeploymentService',
    'DeploymentCorrelator',
    'SnapshotBuilder',
    'RefreshScheduler',
]
