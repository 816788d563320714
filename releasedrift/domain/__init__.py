"""
Domain layer for releasedrift.

Contains pure domain objects with no I/O or side effects:
- ReleaseSource / ManifestSource: Configured upstream repositories
- Ref / Version / ReleaseCatalog: Version history of a source
- DeploymentRecord: What a live deployment declares
- DeploymentDrift / ComponentDrift: Correlation results
- Snapshot: Immutable result of one refresh cycle

These objects are immutable and provide ``to_dict()`` for output.
"""

from .source import (
    Formatter,
    ReleaseSource,
    ManifestSource,
    REF_TYPES,
    RELEASE,
    PRE_RELEASE,
    DRAFT_RELEASE,
    TAG,
    DEFAULT_FORMAT_MATCH,
    DEFAULT_FORMAT_REPLACE,
)
from .release import (
    Ref,
    Version,
    BoshRelease,
    RenderedManifest,
    ReleaseCatalog,
    GENERIC,
    MANIFEST,
)
from .deployment import (
    DeploymentRecord,
    DeploymentDrift,
    ComponentDrift,
    STATUS_OK,
    STATUS_NOT_FOUND,
)
from .snapshot import Snapshot

__all__ = [
    'Formatter',
    'ReleaseSource',
    'ManifestSource',
    'REF_TYPES',
    'RELEASE',
    'PRE_RELEASE',
    'DRAFT_RELEASE',
    'TAG',
    'DEFAULT_FORMAT_MATCH',
    'DEFAULT_FORMAT_REPLACE',
    'Ref',
    'Version',
    'BoshRelease',
    'RenderedManifest',
    'ReleaseCatalog',
    'GENERIC',
    'MANIFEST',
    'DeploymentRecord',
    'DeploymentDrift',
    'ComponentDrift',
    'STATUS_OK',
    'STATUS_NOT_FOUND',
    'Snapshot',
]
