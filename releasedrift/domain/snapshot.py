"""
Snapshot domain object for releasedrift.

A Snapshot is the immutable result of one refresh cycle and the only state
exposed to readers.
"""

from dataclasses import dataclass
from typing import Dict, Any, Tuple

from .release import ReleaseCatalog
from .deployment import DeploymentRecord, DeploymentDrift, ComponentDrift


@dataclass(frozen=True)
class Snapshot:
    """
    Immutable bundle of catalogs, deployments and drift results.

    Attributes:
        timestamp: Epoch seconds at which the refresh cycle completed
        duration: Seconds spent in the refresh cycle
        generic: Catalogs of generic release sources, sorted by name
        manifests: Catalogs of manifest release sources, sorted by name
        deployments: Live deployment records
        drifts: Per-deployment drift
        component_drifts: Per BOSH release drift
        deployments_error: Whether listing deployments failed altogether
    """
    timestamp: float
    duration: float = 0.0
    generic: Tuple[ReleaseCatalog, ...] = ()
    manifests: Tuple[ReleaseCatalog, ...] = ()
    deployments: Tuple[DeploymentRecord, ...] = ()
    drifts: Tuple[DeploymentDrift, ...] = ()
    component_drifts: Tuple[ComponentDrift, ...] = ()
    deployments_error: bool = False

    @property
    def error_count(self) -> int:
        """Number of errored entities in this snapshot."""
        count = sum(1 for c in self.generic if c.has_error)
        count += sum(1 for c in self.manifests if c.has_error)
        count += sum(1 for d in self.deployments if d.has_error)
        if self.deployments_error:
            count += 1
        return count

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp,
            'duration': self.duration,
            'generic_releases': [c.to_dict() for c in self.generic],
            'manifest_releases': [c.to_dict() for c in self.manifests],
            'deployments': [d.to_dict() for d in self.deployments],
            'drifts': [d.to_dict() for d in self.drifts],
            'component_drifts': [d.to_dict() for d in self.component_drifts],
            'error_count': self.error_count,
        }
