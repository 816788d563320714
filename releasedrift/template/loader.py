"""
YAML loaders that keep scalar text.

The stock SafeLoader turns ``1.10`` into the float ``1.1`` and ``3`` into an
int, which loses version strings such as ``version: 1.10``. Manifests, ops
files and variables files are loaded with ``TextLoader`` so that numbers stay
exactly as written. ``ManifestLoader`` also keeps booleans as text and is used
where a document is only read for string fields.
"""

from typing import Any

import yaml

INT_TAG = 'tag:yaml.org,2002:int'
FLOAT_TAG = 'tag:yaml.org,2002:float'
BOOL_TAG = 'tag:yaml.org,2002:bool'


def _without_resolvers(resolvers, *tags):
    return {
        first: [(tag, regexp) for tag, regexp in entries if tag not in tags]
        for first, entries in resolvers.items()
    }


class TextLoader(yaml.SafeLoader):
    """SafeLoader resolving plain int and float scalars as strings."""


TextLoader.yaml_implicit_resolvers = _without_resolvers(
    yaml.SafeLoader.yaml_implicit_resolvers, INT_TAG, FLOAT_TAG)


class ManifestLoader(TextLoader):
    """TextLoader that also resolves plain booleans as strings."""


ManifestLoader.yaml_implicit_resolvers = _without_resolvers(
    TextLoader.yaml_implicit_resolvers, BOOL_TAG)


def load_text(content) -> Any:
    """Load a YAML document, keeping numbers as their source text."""
    return yaml.load(content, Loader=TextLoader)


def load_manifest(content) -> Any:
    """Load a YAML document, keeping numbers and booleans as their source text."""
    return yaml.load(content, Loader=ManifestLoader)
