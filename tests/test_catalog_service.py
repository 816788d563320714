"""Tests for release catalog building."""

import threading

import pytest

from releasedrift.domain import ReleaseSource, ManifestSource, Ref, Version, BoshRelease, Formatter, GENERIC, MANIFEST
from releasedrift.errors import FetchError, RefreshCancelled
from releasedrift.services import CatalogService, VersionFormatter, create_versions

from conftest import FakeGitHub, release

CF_MANIFEST = """
name: cf
releases:
- name: capi
  version: "1.90"
  url: https://bosh.io/d/github.com/cloudfoundry/capi-release?v=1.90
- name: uaa
  version: ((uaa_version))
"""


def generic_source(name='prometheus', owner='prometheus', repo='prometheus'):
    return ReleaseSource(name=name, owner=owner, repo=repo)


def manifest_source(**kwargs):
    defaults = dict(name='cf', owner='cloudfoundry', repo='cf-deployment', manifest='cf-deployment.yml')
    defaults.update(kwargs)
    return ManifestSource(**defaults)


class TestCreateVersions:
    """Tests for create_versions."""

    def test_expiry_chain(self):
        """Each version expires when the next newer one appeared."""
        refs = [Ref('v3.0.0', 300), Ref('v2.0.0', 200), Ref('v1.0.0', 100)]
        versions = create_versions(refs, generic_source(), VersionFormatter())

        assert versions == [
            Version(gitref='v3.0.0', version='3.0.0', time=300, expired_since=0),
            Version(gitref='v2.0.0', version='2.0.0', time=200, expired_since=300),
            Version(gitref='v1.0.0', version='1.0.0', time=100, expired_since=200),
        ]

    def test_source_formatter_used(self):
        source = ReleaseSource(name='x', owner='o', repo='r', formatter=Formatter(match=r'release-(\d+)', replace='$1'))
        versions = create_versions([Ref('release-42', 1)], source, VersionFormatter())
        assert versions[0].version == '42'

    def test_empty(self):
        assert create_versions([], generic_source(), VersionFormatter()) == []


class TestBuildGeneric:
    """Tests for CatalogService.build_generic."""

    def test_catalog(self):
        github = FakeGitHub(releases={('prometheus', 'prometheus'): [
            release('v2.1.0', 200),
            release('v2.0.0', 100),
        ]})
        catalog = CatalogService(github).build_generic(generic_source())

        assert catalog.kind == GENERIC
        assert not catalog.has_error
        assert catalog.latest.version == '2.1.0'
        assert [v.version for v in catalog.versions] == ['2.1.0', '2.0.0']
        assert catalog.versions[1].expired_since == 200
        assert catalog.releases == ()

    def test_no_release_is_an_error(self):
        github = FakeGitHub(releases={('prometheus', 'prometheus'): [release('v1', 1, prerelease=True, draft=True)]})
        catalog = CatalogService(github).build_generic(generic_source())

        assert catalog.has_error
        assert catalog.latest is None
        assert catalog.versions == ()
        assert 'unable to find any release' in catalog.error

    def test_fetch_error_is_an_error(self):
        github = FakeGitHub(releases={('prometheus', 'prometheus'): FetchError("boom", status_code=500)})
        catalog = CatalogService(github).build_generic(generic_source())
        assert catalog.has_error
        assert catalog.error == 'boom'


class TestBuildManifest:
    """Tests for CatalogService.build_manifest."""

    def make_github(self, files=None):
        return FakeGitHub(
            releases={('cloudfoundry', 'cf-deployment'): [release('v12.0.0', 200), release('v11.0.0', 100)]},
            files=files or {('cf-deployment.yml', 'v12.0.0'): CF_MANIFEST},
        )

    def test_releases_of_latest_manifest(self):
        github = self.make_github()
        catalog = CatalogService(github).build_manifest(manifest_source())

        assert catalog.kind == MANIFEST
        assert not catalog.has_error
        assert catalog.latest.gitref == 'v12.0.0'
        assert catalog.find_release('capi') == BoshRelease(
            name='capi',
            url='https://bosh.io/d/github.com/cloudfoundry/capi-release?v=1.90',
            version='1.90',
        )
        assert catalog.find_release('uaa').version == '((uaa_version))'
        assert ('download_content', 'cloudfoundry', 'cf-deployment', 'cf-deployment.yml', 'v12.0.0') in github.calls

    def test_rendered_with_vars(self):
        github = FakeGitHub(
            releases={('cloudfoundry', 'cf-deployment'): [release('v12.0.0', 200)]},
            files={
                ('cf-deployment.yml', 'v12.0.0'): CF_MANIFEST,
                ('vars.yml', 'v12.0.0'): "uaa_version: '74.1'\n",
            },
        )
        catalog = CatalogService(github).build_manifest(manifest_source(vars=('vars.yml',)))
        assert catalog.find_release('uaa').version == '74.1'

    def test_partial_render_keeps_releases(self):
        """A skipped ops file flags the catalog but keeps what was rendered."""
        github = self.make_github()
        catalog = CatalogService(github).build_manifest(manifest_source(ops=('missing-ops.yml',)))

        assert catalog.has_error
        assert 'missing-ops.yml' in catalog.error
        assert catalog.find_release('capi').version == '1.90'

    def test_failed_render_publishes_no_releases(self):
        """Releases of an unrendered manifest are never published."""
        github = self.make_github({
            ('cf-deployment.yml', 'v12.0.0'): "name: cf-((props))\nreleases:\n- {name: capi, version: ((capi))}\n",
            ('vars.yml', 'v12.0.0'): "props: {a: 1}\ncapi: '1.90'\n",
        })
        catalog = CatalogService(github).build_manifest(manifest_source(vars=('vars.yml',)))

        assert catalog.has_error
        assert 'unable to render manifest' in catalog.error
        assert catalog.latest.version == '12.0.0'
        assert catalog.releases == ()

    def test_float_like_release_version(self):
        github = self.make_github({
            ('cf-deployment.yml', 'v12.0.0'): "releases:\n- {name: capi, version: 1.10}\n",
        })
        catalog = CatalogService(github).build_manifest(manifest_source())
        assert catalog.find_release('capi').version == '1.10'

    def test_download_failure_keeps_versions(self):
        github = FakeGitHub(releases={('cloudfoundry', 'cf-deployment'): [release('v12.0.0', 200)]})
        catalog = CatalogService(github).build_manifest(manifest_source())

        assert catalog.has_error
        assert catalog.latest.version == '12.0.0'
        assert catalog.releases == ()

    def test_no_manifest_path(self):
        github = self.make_github()
        catalog = CatalogService(github).build_manifest(manifest_source(manifest=''))

        assert not catalog.has_error
        assert catalog.releases == ()
        assert not [c for c in github.calls if c[0] == 'download_content']

    def test_resolution_failure(self):
        github = FakeGitHub()
        catalog = CatalogService(github).build_manifest(manifest_source())
        assert catalog.has_error
        assert catalog.latest is None


class TestBuildAll:
    """Tests for building every source of a kind."""

    def test_sorted_by_name_and_isolated(self):
        """One failing source does not stop the others."""
        github = FakeGitHub(releases={
            ('o', 'b'): [release('v1.0.0', 1)],
            ('o', 'a'): FetchError("down"),
        })
        sources = [generic_source('zeta', 'o', 'b'), generic_source('alpha', 'o', 'a')]
        catalogs = CatalogService(github).build_all_generic(sources)

        assert [c.name for c in catalogs] == ['alpha', 'zeta']
        assert catalogs[0].has_error
        assert not catalogs[1].has_error

    def test_cancelled(self):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(RefreshCancelled):
            CatalogService(FakeGitHub()).build_all_manifest([manifest_source()], cancel=cancel)

    def test_not_cancelled_without_sources(self):
        cancel = threading.Event()
        cancel.set()
        assert CatalogService(FakeGitHub()).build_all_generic([], cancel=cancel) == []
