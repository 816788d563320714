"""
Manifest rendering for releasedrift.

Renders the manifest of a manifest source at a given git reference:

1. Ops phase: each ops file is fetched, parsed, appended to the chain and
   the chain is validated against the manifest (without variables).
2. Variables phase: each variables file is fetched and merged, last writer
   wins.
3. Final evaluation: the manifest is evaluated once with the whole chain
   and the merged variables.

An ops or variables file that cannot be fetched, parsed or applied is
skipped and the result is flagged, so a partially patched manifest is
still produced.
"""

import logging
import warnings
from typing import Any, Dict, List, Tuple

import yaml

from ..domain import ManifestSource, RenderedManifest, BoshRelease
from ..errors import ReleaseDriftError, ParseError
from ..template import Ops, Template, load_manifest, parse_ops, parse_variables

logger = logging.getLogger(__name__)


def extract_releases(content: bytes) -> Tuple[BoshRelease, ...]:
    """
    Extract the ``releases`` section of a BOSH manifest.

    Raises:
        ParseError: If the manifest is not valid YAML or the section is malformed
    """
    try:
        manifest = load_manifest(content)
    except yaml.YAMLError as e:
        raise ParseError(f"invalid manifest: {e}") from e

    if manifest is None:
        return ()
    if not isinstance(manifest, dict):
        raise ParseError(f"expected manifest to be a map, found '{type(manifest).__name__}'")

    releases = manifest.get('releases') or []
    if not isinstance(releases, list):
        raise ParseError("expected manifest releases to be a list")
    for entry in releases:
        if not isinstance(entry, dict):
            raise ParseError("expected manifest release entries to be maps")
    return tuple(BoshRelease.from_manifest_entry(entry) for entry in releases)


class ManifestRenderer:
    """
    Renders manifest sources with their ops and variables files.

    Example:
        renderer = ManifestRenderer(github)
        rendered = renderer.render(source, "v12.0.0", manifest_bytes)
        if rendered.has_error:
            print("partially rendered:", rendered.errors)
    """

    def __init__(self, github):
        """
        Initialize ManifestRenderer.

        Args:
            github: Source-control capability (see GitHubClient)
        """
        self.github = github

    def _fetch(self, source: ManifestSource, gitref: str, path: str) -> bytes:
        return self.github.download_content(source.owner, source.repo, path, gitref)

    def render(self, source: ManifestSource, gitref: str, manifest: bytes,
               strict: bool = False) -> RenderedManifest:
        """
        Render ``manifest`` with the source's ops and variables files at ``gitref``.

        Args:
            source: Manifest source providing ops and variables paths
            gitref: Git reference every file is fetched at
            manifest: Raw manifest content
            strict: Deprecated. Abort on the first failing file instead of
                skipping it

        Returns:
            The rendered manifest, or the original manifest flagged as
            errored when the final evaluation fails.

        Raises:
            ReleaseDriftError: Only in strict mode
        """
        if strict:
            warnings.warn(
                "strict manifest rendering is deprecated, failing files are skipped by default",
                DeprecationWarning,
                stacklevel=2,
            )

        log_prefix = f"{source.name} ({source.full_name}@{gitref})"
        logger.debug(f"{log_prefix}: rendering final manifest")

        template = Template(manifest)
        errors: List[str] = []

        def skip(message: str, err: ReleaseDriftError) -> None:
            if strict:
                raise err
            logger.warning(f"{log_prefix}: {message}: {err}")
            errors.append(f"{message}: {err}")

        chain = Ops()
        for path in source.ops:
            try:
                ops = parse_ops(self._fetch(source, gitref, path))
            except ReleaseDriftError as e:
                skip(f"skipping ops-file '{path}'", e)
                continue

            candidate = Ops(chain.ops)
            candidate.extend(ops)
            try:
                template.evaluate(None, candidate)
            except ReleaseDriftError as e:
                skip(f"skipping ops-file '{path}', unable to apply", e)
                continue
            chain = candidate

        variables: Dict[str, Any] = {}
        for path in source.vars:
            try:
                variables.update(parse_variables(self._fetch(source, gitref, path)))
            except ReleaseDriftError as e:
                skip(f"skipping vars-file '{path}'", e)

        try:
            content = template.evaluate(variables, chain)
        except ReleaseDriftError as e:
            if strict:
                raise
            logger.warning(f"{log_prefix}: unable to render manifest with ops-files: {e}")
            errors.append(f"unable to render manifest: {e}")
            return RenderedManifest(content=manifest, has_error=True, errors=tuple(errors), failed=True)

        return RenderedManifest(content=content, has_error=bool(errors), errors=tuple(errors))
