"""
releasedrift - Release resolution and manifest rendering for BOSH deployments.

releasedrift tracks GitHub repositories publishing BOSH manifests (or plain
releases), builds their version history, renders the latest manifest with
its ops and variables files, and measures how far behind each live BOSH
deployment and each of its BOSH releases is.

Quick Start:
    from releasedrift.config import load_config, parse_config
    from releasedrift.app import build_snapshot_builder

    config = parse_config(load_config("config.yml"))
    snapshot = build_snapshot_builder(config).build()
    for drift in snapshot.drifts:
        print(drift.deployment, drift.current_version, drift.latest_version)

Domain Objects:
    ReleaseSource / ManifestSource - Tracked GitHub repositories
    ReleaseCatalog - Version history of a source
    DeploymentRecord - What a live deployment declares
    DeploymentDrift / ComponentDrift - Correlation results
    Snapshot - Immutable result of one refresh cycle

Services:
    RefResolver, VersionFormatter, ManifestRenderer, CatalogService,
    DeploymentService, DeploymentCorrelator, SnapshotBuilder,
    RefreshScheduler
"""

__version__ = "0.1.0"

from .domain import (
    ReleaseSource,
    ManifestSource,
    ReleaseCatalog,
    DeploymentRecord,
    DeploymentDrift,
    ComponentDrift,
    Snapshot,
)
from .services import SnapshotBuilder, RefreshScheduler

__all__ = [
    '__version__',
    'ReleaseSource',
    'ManifestSource',
    'ReleaseCatalog',
    'DeploymentRecord',
    'DeploymentDrift',
    'ComponentDrift',
    'Snapshot',
    'SnapshotBuilder',
    'RefreshScheduler',
]
