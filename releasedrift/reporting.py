"""
Prometheus reporting for releasedrift.

Metric families are built at scrape time from the last published Snapshot,
so a scrape never triggers nor waits for a refresh cycle.
"""

import logging
import threading
from typing import Iterator, Optional, Tuple
from wsgiref.simple_server import WSGIRequestHandler

from prometheus_client import CollectorRegistry, make_wsgi_app
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.exposition import ThreadingWSGIServer

from .domain import Snapshot

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = 'releasedrift'
DEFAULT_LISTEN_ADDRESS = ':9362'


class DriftCollector:
    """
    Custom collector exposing the current Snapshot.

    Example:
        registry = CollectorRegistry()
        registry.register(DriftCollector(scheduler, environment="prod"))
    """

    def __init__(self, scheduler, namespace: str = DEFAULT_NAMESPACE, environment: str = ''):
        """
        Initialize DriftCollector.

        Args:
            scheduler: Snapshot owner (see RefreshScheduler), read with ``current()``
            namespace: Metric name prefix
            environment: Value of the ``environment`` label on every sample
        """
        self.scheduler = scheduler
        self.namespace = namespace
        self.environment = environment

    def _gauge(self, name: str, documentation: str, labels: Tuple[str, ...] = ()) -> GaugeMetricFamily:
        return GaugeMetricFamily(
            f"{self.namespace}_{name}",
            documentation,
            labels=('environment',) + labels,
        )

    def _add(self, family: GaugeMetricFamily, labels, value: float) -> None:
        family.add_metric([self.environment] + [str(v) for v in labels], float(value))

    def describe(self):
        # families are dynamic; skip registration-time collection
        return []

    def collect(self) -> Iterator[GaugeMetricFamily]:
        snapshot: Optional[Snapshot] = self.scheduler.current()

        manifest_release = self._gauge(
            'manifest_release',
            'Seconds from epoch since manifest release is out of date, (0 means up to date)',
            ('name', 'version', 'owner', 'repo'),
        )
        manifest_bosh_release = self._gauge(
            'manifest_bosh_release_info',
            'Informational metric that gives the bosh release versions requested by the '
            'latest version of a manifest release, (always 0)',
            ('manifest_name', 'manifest_version', 'owner', 'repo',
             'boshrelease_name', 'boshrelease_version', 'boshrelease_url'),
        )
        generic_release = self._gauge(
            'generic_release',
            'Seconds from epoch since github release is out of date, (0 means up to date)',
            ('name', 'version', 'owner', 'repo'),
        )
        deployment_status = self._gauge(
            'deployment_status',
            'Seconds from epoch since this deployment is out of date, (0 means up to date)',
            ('deployment', 'name', 'current', 'latest'),
        )
        deployment_bosh_release = self._gauge(
            'deployment_bosh_release_status',
            'Seconds from epoch since this bosh release is out of date, (0 means up to date)',
            ('deployment', 'manifest_name', 'manifest_current', 'manifest_latest',
             'boshrelease_name', 'boshrelease_current', 'boshrelease_latest'),
        )
        last_timestamp = self._gauge(
            'last_scrape_timestamp', 'Seconds from epoch since last refresh of releases and deployments.')
        last_error = self._gauge(
            'last_scrape_error', 'Number of errors in last refresh of releases and deployments.')
        last_duration = self._gauge(
            'last_scrape_duration', 'Duration of the last refresh of releases and deployments.')

        if snapshot is not None:
            for catalog in snapshot.manifests:
                for version in catalog.versions:
                    self._add(manifest_release, (catalog.name, version.version, catalog.owner, catalog.repo),
                              version.expired_since)
                if catalog.latest is not None:
                    for release in catalog.releases:
                        self._add(manifest_bosh_release,
                                  (catalog.name, catalog.latest.version, catalog.owner, catalog.repo,
                                   release.name, release.version, release.url),
                                  0)

            for catalog in snapshot.generic:
                for version in catalog.versions:
                    self._add(generic_release, (catalog.name, version.version, catalog.owner, catalog.repo),
                              version.expired_since)

            for drift in snapshot.drifts:
                self._add(deployment_status,
                          (drift.deployment, drift.manifest_name, drift.current_version, drift.latest_version),
                          drift.expired_since)

            for component in snapshot.component_drifts:
                self._add(deployment_bosh_release,
                          (component.deployment, component.manifest_name, component.manifest_current,
                           component.manifest_latest, component.component_name,
                           component.component_current, component.component_latest),
                          component.expired_since)

            self._add(last_timestamp, (), snapshot.timestamp)
            self._add(last_error, (), snapshot.error_count)
            self._add(last_duration, (), snapshot.duration)

        yield manifest_release
        yield manifest_bosh_release
        yield generic_release
        yield deployment_status
        yield deployment_bosh_release
        yield last_timestamp
        yield last_error
        yield last_duration


def build_registry(scheduler, namespace: str = DEFAULT_NAMESPACE, environment: str = '') -> CollectorRegistry:
    """Create a registry holding only the drift collector."""
    registry = CollectorRegistry()
    registry.register(DriftCollector(scheduler, namespace=namespace, environment=environment))
    return registry


def parse_listen_address(address: str) -> Tuple[str, int]:
    """
    Split ``host:port`` (``:9362`` listens on every interface).

    Raises:
        ValueError: On a missing or invalid port
    """
    host, sep, port = address.rpartition(':')
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address '{address}', expected [host]:port")
    return host.strip('[]') or '0.0.0.0', int(port)


class _SilentHandler(WSGIRequestHandler):
    """WSGI handler that logs requests at debug level only."""

    def log_message(self, format: str, *args) -> None:
        logger.debug(f"{self.address_string()} - {format % args}")


class MetricsServer:
    """Serves a registry over HTTP in a background thread."""

    def __init__(self, registry: CollectorRegistry):
        self._registry = registry
        self._lock = threading.Lock()
        self._server: Optional[ThreadingWSGIServer] = None
        self._thread: Optional[threading.Thread] = None

    def start(self, host: str, port: int) -> None:
        with self._lock:
            if self._server is not None:
                return
            server = ThreadingWSGIServer((host, port), _SilentHandler)
            server.daemon_threads = True
            server.set_app(make_wsgi_app(self._registry))
            thread = threading.Thread(target=server.serve_forever, name='releasedrift-metrics', daemon=True)
            thread.start()
            self._server = server
            self._thread = thread
            logger.info(f"listening on {host}:{self.port}")

    def stop(self) -> None:
        with self._lock:
            if self._server is None:
                return
            server, thread = self._server, self._thread
            self._server = None
            self._thread = None
            server.shutdown()
            if thread is not None:
                thread.join(timeout=5)
            server.server_close()

    @property
    def port(self) -> Optional[int]:
        """Return the bound port when running."""
        if self._server is None:
            return None
        return int(self._server.server_address[1])
