"""
Deployment domain objects for releasedrift.

DeploymentRecord is what a live Director deployment declares about itself.
DeploymentDrift and ComponentDrift are the correlation results.
"""

from dataclasses import dataclass
from typing import Dict, Any, Tuple

from .release import BoshRelease

STATUS_OK = 'ok'
STATUS_NOT_FOUND = 'not-found'


@dataclass(frozen=True)
class DeploymentRecord:
    """
    A live deployment as reported by the Director.

    Attributes:
        deployment: Deployment name on the Director
        manifest_name: Self-declared ``manifest_name`` (defaults to deployment)
        current_version: Self-declared ``manifest_version``, normalized
        releases: BOSH releases the deployment manifest declares
        has_error: Whether the manifest could not be fetched or parsed
    """
    deployment: str
    manifest_name: str = ''
    current_version: str = ''
    releases: Tuple[BoshRelease, ...] = ()
    has_error: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'deployment': self.deployment,
            'manifest_name': self.manifest_name,
            'current_version': self.current_version,
            'has_error': self.has_error,
            'releases': [r.to_dict() for r in self.releases],
        }


@dataclass(frozen=True)
class DeploymentDrift:
    """Drift of a deployment against its manifest source."""
    deployment: str
    manifest_name: str
    current_version: str
    latest_version: str
    expired_since: int = 0
    status: str = STATUS_OK

    def to_dict(self) -> Dict[str, Any]:
        return {
            'deployment': self.deployment,
            'manifest_name': self.manifest_name,
            'current_version': self.current_version,
            'latest_version': self.latest_version,
            'expired_since': self.expired_since,
            'status': self.status,
        }


@dataclass(frozen=True)
class ComponentDrift:
    """Drift of one BOSH release of a deployment against the latest manifest."""
    deployment: str
    manifest_name: str
    manifest_current: str
    manifest_latest: str
    component_name: str
    component_current: str
    component_latest: str
    expired_since: int = 0
    status: str = STATUS_OK

    def to_dict(self) -> Dict[str, Any]:
        return {
            'deployment': self.deployment,
            'manifest_name': self.manifest_name,
            'component_name': self.component_name,
            'component_current': self.component_current,
            'component_latest': self.component_latest,
            'expired_since': self.expired_since,
            'status': self.status,
        }
