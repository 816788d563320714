"""Tests for deployment collection."""

import threading

import pytest

from releasedrift.domain import DeploymentRecord, BoshRelease
from releasedrift.errors import FetchError, ParseError, RefreshCancelled
from releasedrift.services import DeploymentService
from releasedrift.services.deployment_service import normalize_version, parse_deployment_manifest

from conftest import FakeDirector, FakeDeployment

CF_DEPLOYMENT = """
name: cf
manifest_name: cf
manifest_version: v12.0.0
releases:
- name: capi
  version: "1.90"
- name: uaa
  version: "74.0"
"""


class TestNormalizeVersion:

    @pytest.mark.parametrize("raw, expected", [
        ("v12.0.0", "12.0.0"),
        ("12.0.0", "12.0.0"),
        ("", ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_version(raw) == expected


class TestParseDeploymentManifest:
    """Tests for parse_deployment_manifest."""

    def test_record(self):
        record = parse_deployment_manifest('cf-prod', CF_DEPLOYMENT)
        assert record == DeploymentRecord(
            deployment='cf-prod',
            manifest_name='cf',
            current_version='12.0.0',
            releases=(
                BoshRelease(name='capi', version='1.90'),
                BoshRelease(name='uaa', version='74.0'),
            ),
        )

    def test_manifest_name_defaults_to_deployment(self):
        record = parse_deployment_manifest('cf-prod', "manifest_version: '1.0'\n")
        assert record.manifest_name == 'cf-prod'
        assert record.releases == ()

    def test_numeric_version(self):
        """YAML numbers are kept as their text."""
        record = parse_deployment_manifest('x', "manifest_version: 3\n")
        assert record.current_version == '3'

    @pytest.mark.parametrize("raw", ["1.10", "1.20", "2.0"])
    def test_float_like_versions_keep_trailing_zeros(self, raw):
        manifest = f"manifest_name: {raw}\nmanifest_version: {raw}\nreleases:\n- {{name: capi, version: {raw}}}\n"
        record = parse_deployment_manifest('x', manifest)
        assert record.manifest_name == raw
        assert record.current_version == raw
        assert record.releases == (BoshRelease(name='capi', version=raw),)

    def test_null_release_fields(self):
        record = parse_deployment_manifest('x', "manifest_version: v1\nreleases:\n- {name: ~, version: ~}\n")
        assert record.releases == (BoshRelease(name='', version=''),)

    @pytest.mark.parametrize("manifest", [
        "name: cf\n",
        "manifest_version: ''\n",
        "a: [",
        "- a\n",
        "manifest_version: v1\nreleases: [capi]\n",
    ])
    def test_invalid(self, manifest):
        with pytest.raises(ParseError):
            parse_deployment_manifest('cf', manifest)


class TestDeploymentService:
    """Tests for DeploymentService.collect."""

    def test_collect(self):
        director = FakeDirector([FakeDeployment('cf-prod', CF_DEPLOYMENT)])
        records = DeploymentService(director).collect()
        assert [r.deployment for r in records] == ['cf-prod']
        assert records[0].current_version == '12.0.0'

    def test_broken_deployment_yields_errored_record(self):
        """A failing deployment does not stop the others."""
        director = FakeDirector([
            FakeDeployment('broken', FetchError("500")),
            FakeDeployment('noversion', "name: x\n"),
            FakeDeployment('cf-prod', CF_DEPLOYMENT),
        ])
        records = DeploymentService(director).collect()

        assert records[0] == DeploymentRecord(deployment='broken', has_error=True)
        assert records[1].has_error
        assert not records[2].has_error

    def test_excludes_match_manifest_name(self):
        director = FakeDirector([
            FakeDeployment('cf-prod', CF_DEPLOYMENT),
            FakeDeployment('tmp-1', "manifest_name: tmp-test\nmanifest_version: v1\n"),
        ])
        service = DeploymentService(director, excludes=['^tmp-'])

        assert service.is_excluded('tmp-test')
        assert not service.is_excluded('cf')
        assert [r.deployment for r in service.collect()] == ['cf-prod']

    def test_listing_error_propagates(self):
        with pytest.raises(FetchError):
            DeploymentService(FakeDirector(error=FetchError("unreachable"))).collect()

    def test_cancelled(self):
        cancel = threading.Event()
        cancel.set()
        director = FakeDirector([FakeDeployment('cf-prod', CF_DEPLOYMENT)])
        with pytest.raises(RefreshCancelled):
            DeploymentService(director).collect(cancel=cancel)
