"""
Release source domain objects for releasedrift.

A release source is a GitHub repository tracked for versions. A manifest
source additionally carries a BOSH manifest template, the ops files and
variable files applied to it, and the matchers that associate live
deployments with it.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Any, Tuple

# Reference types a source may accept
RELEASE = 'release'
PRE_RELEASE = 'pre_release'
DRAFT_RELEASE = 'draft_release'
TAG = 'tag'

REF_TYPES = (RELEASE, PRE_RELEASE, DRAFT_RELEASE, TAG)

DEFAULT_FORMAT_MATCH = r'v([0-9.]+)'
DEFAULT_FORMAT_REPLACE = '${1}'


@dataclass(frozen=True)
class Formatter:
    """Regex pair turning a raw git reference into a display version."""
    match: str = DEFAULT_FORMAT_MATCH
    replace: str = DEFAULT_FORMAT_REPLACE

    def to_dict(self) -> Dict[str, Any]:
        return {'match': self.match, 'replace': self.replace}


@dataclass(frozen=True)
class ReleaseSource:
    """
    A GitHub repository tracked for releases.

    Attributes:
        name: Configured source name (unique per source kind)
        owner: Repository owner
        repo: Repository name
        types: Accepted reference types (see REF_TYPES)
        formatter: Version formatter applied to reference names
        deduplicate: Keep only the newest ref per reference name
    """
    name: str
    owner: str
    repo: str
    types: Tuple[str, ...] = (RELEASE,)
    formatter: Formatter = field(default_factory=Formatter)
    deduplicate: bool = False

    def has_type(self, ref_type: str) -> bool:
        """Tell whether the given reference type is accepted."""
        return ref_type in self.types

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'owner': self.owner,
            'repo': self.repo,
            'types': list(self.types),
            'format': self.formatter.to_dict(),
            'deduplicate': self.deduplicate,
        }


def default_matcher(name: str) -> str:
    """Matcher used when a manifest source configures none."""
    return f"^{re.escape(name)}(-.*)?$"


@dataclass(frozen=True)
class ManifestSource(ReleaseSource):
    """
    A release source that also ships a deployable BOSH manifest.

    ``ops`` and ``vars`` are applied in order, all fetched at the same
    git reference as the manifest. An empty ``manifest`` disables rendering.
    """
    manifest: str = ''
    ops: Tuple[str, ...] = ()
    vars: Tuple[str, ...] = ()
    matchers: Tuple[str, ...] = ()

    def __post_init__(self):
        if not self.matchers:
            # frozen dataclass: bypass __setattr__ for the computed default
            object.__setattr__(self, 'matchers', (default_matcher(self.name),))

    def match(self, manifest_name: str) -> bool:
        """Tell whether a deployment's manifest name belongs to this source."""
        return any(re.search(m, manifest_name) for m in self.matchers)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            'manifest': self.manifest,
            'ops': list(self.ops),
            'vars': list(self.vars),
            'matchers': list(self.matchers),
        })
        return data
