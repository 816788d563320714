"""
Release domain objects for releasedrift.

Refs and Versions are rebuilt wholesale on every refresh cycle and never
mutated in place. A ReleaseCatalog aggregates the version history of one
configured source.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any, Tuple

GENERIC = 'generic'
MANIFEST = 'manifest'


@dataclass(frozen=True)
class Ref:
    """A named git reference with its creation time (epoch seconds)."""
    ref: str
    time: int


@dataclass(frozen=True)
class Version:
    """
    A formatted version of a source.

    Attributes:
        gitref: Raw git reference the version was built from
        version: Display version, as produced by the source formatter
        time: Creation time of the reference (epoch seconds)
        expired_since: Time at which a newer version superseded this one,
            0 for the latest version
    """
    gitref: str
    version: str
    time: int
    expired_since: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'gitref': self.gitref,
            'time': self.time,
            'expired_since': self.expired_since,
        }


@dataclass(frozen=True)
class BoshRelease:
    """A BOSH release declared in a manifest."""
    name: str
    url: str = ''
    version: str = ''

    @classmethod
    def from_manifest_entry(cls, data: Dict[str, Any]) -> 'BoshRelease':
        return cls(
            name=str(data.get('name') or ''),
            url=str(data.get('url') or ''),
            version=str(data.get('version') or ''),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'url': self.url, 'version': self.version}


@dataclass(frozen=True)
class RenderedManifest:
    """
    Result of rendering a manifest with its ops and variable files.

    ``failed`` is set when the final evaluation failed, ``content`` is then
    the unrendered manifest.
    """
    content: bytes
    has_error: bool = False
    errors: Tuple[str, ...] = ()
    failed: bool = False


@dataclass(frozen=True)
class ReleaseCatalog:
    """
    Version history of one configured source.

    ``versions`` is sorted newest first. ``releases`` holds the BOSH
    releases of the rendered latest manifest (manifest sources only).
    Errored catalogs keep their identity fields and have empty history.
    """
    name: str
    owner: str
    repo: str
    kind: str = GENERIC
    versions: Tuple[Version, ...] = ()
    latest: Optional[Version] = None
    releases: Tuple[BoshRelease, ...] = ()
    has_error: bool = False
    error: Optional[str] = None

    def find_version(self, version: str) -> Optional[Version]:
        """Find a version entry by its formatted version string."""
        for v in self.versions:
            if v.version == version:
                return v
        return None

    def find_release(self, name: str) -> Optional[BoshRelease]:
        """Find a BOSH release of the latest manifest by name."""
        for r in self.releases:
            if r.name == name:
                return r
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'name': self.name,
            'owner': self.owner,
            'repo': self.repo,
            'versions': [v.to_dict() for v in self.versions],
            'latest': self.latest.to_dict() if self.latest else None,
            'has_error': self.has_error,
        }
        if self.kind == MANIFEST:
            data['releases'] = [r.to_dict() for r in self.releases]
        return data
