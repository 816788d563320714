"""
Refresh scheduling for releasedrift.

A refresh cycle builds every catalog, reads the live deployments,
correlates them and publishes the result as one immutable Snapshot.
Readers always observe the last completed Snapshot and never block on a
running cycle; cycles never overlap.
"""

import logging
import threading
import time
from typing import Callable, Iterable, Optional

from ..domain import ReleaseSource, ManifestSource, Snapshot
from ..errors import FetchError, RefreshCancelled
from .catalog_service import CatalogService, check_cancelled
from .correlator import DeploymentCorrelator
from .deployment_service import DeploymentService

logger = logging.getLogger(__name__)


class SnapshotBuilder:
    """
    Runs one refresh cycle.

    Example:
        builder = SnapshotBuilder(catalogs, deployments, generic_sources, manifest_sources)
        snapshot = builder.build()
    """

    def __init__(
        self,
        catalogs: CatalogService,
        deployments: Optional[DeploymentService],
        generic_sources: Iterable[ReleaseSource],
        manifest_sources: Iterable[ManifestSource],
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize SnapshotBuilder.

        Args:
            catalogs: Catalog service used for every source
            deployments: Deployment service (None skips deployment correlation)
            generic_sources: Generic release sources
            manifest_sources: Manifest release sources
            clock: Time source returning epoch seconds
        """
        self.catalogs = catalogs
        self.deployments = deployments
        self.generic_sources = list(generic_sources)
        self.manifest_sources = list(manifest_sources)
        self.correlator = DeploymentCorrelator(self.manifest_sources)
        self.clock = clock

    def build(self, cancel: Optional[threading.Event] = None) -> Snapshot:
        """
        Run a full refresh cycle.

        Raises:
            RefreshCancelled: If ``cancel`` is set during the cycle
        """
        started = self.clock()
        generic = self.catalogs.build_all_generic(self.generic_sources, cancel)
        manifests = self.catalogs.build_all_manifest(self.manifest_sources, cancel)

        records = []
        deployments_error = False
        if self.deployments is not None:
            check_cancelled(cancel)
            try:
                records = self.deployments.collect(cancel)
            except FetchError as e:
                logger.error(f"unable to get bosh deployments: {e}")
                deployments_error = True

        drifts, components = self.correlator.correlate(records, manifests)
        finished = self.clock()
        return Snapshot(
            timestamp=finished,
            duration=finished - started,
            generic=tuple(generic),
            manifests=tuple(manifests),
            deployments=tuple(records),
            drifts=tuple(drifts),
            component_drifts=tuple(components),
            deployments_error=deployments_error,
        )


class RefreshScheduler:
    """
    Owns the published Snapshot and decides when to refresh it.

    Two ways of driving refreshes are supported:
    - lazily, with ``get()``: a read after the interval elapsed triggers a
      single refresh
    - periodically, with ``run(stop)`` (or ``start(stop)`` in a thread)

    Example:
        scheduler = RefreshScheduler(builder, interval=4 * 3600)
        stop = threading.Event()
        scheduler.start(stop)
        ...
        snapshot = scheduler.current()
        stop.set()
    """

    def __init__(self, builder: SnapshotBuilder, interval: float,
                 clock: Callable[[], float] = time.time):
        """
        Initialize RefreshScheduler.

        Args:
            builder: Builder running refresh cycles
            interval: Seconds between two refresh cycles
            clock: Time source returning epoch seconds
        """
        self.builder = builder
        self.interval = interval
        self.clock = clock
        self._snapshot: Optional[Snapshot] = None
        self._publish_lock = threading.Lock()
        self._refresh_lock = threading.Lock()
        self.cycles = 0

    def current(self) -> Optional[Snapshot]:
        """Last published snapshot (None before the first cycle completes)."""
        with self._publish_lock:
            return self._snapshot

    def _publish(self, snapshot: Snapshot) -> None:
        with self._publish_lock:
            self._snapshot = snapshot
        logger.info(
            f"refresh cycle completed in {snapshot.duration:.2f}s with {snapshot.error_count} error(s)"
        )

    def is_stale(self) -> bool:
        """Whether the published snapshot is missing or older than the interval."""
        snapshot = self.current()
        return snapshot is None or self.clock() - snapshot.timestamp >= self.interval

    def _cycle(self, cancel: Optional[threading.Event]) -> Optional[Snapshot]:
        """Build and publish a snapshot; the caller holds the refresh lock."""
        self.cycles += 1
        try:
            snapshot = self.builder.build(cancel)
        except RefreshCancelled:
            logger.info("refresh cycle cancelled, keeping previous snapshot")
            return None
        self._publish(snapshot)
        return snapshot

    def refresh(self, cancel: Optional[threading.Event] = None) -> Optional[Snapshot]:
        """
        Run a refresh cycle now.

        Returns:
            The new snapshot, or None when a cycle is already running or the
            cycle was cancelled
        """
        if not self._refresh_lock.acquire(blocking=False):
            logger.debug("refresh already in progress, deferring")
            return None
        try:
            return self._cycle(cancel)
        finally:
            self._refresh_lock.release()

    def get(self) -> Optional[Snapshot]:
        """
        Snapshot for a reader, refreshing it first when stale.

        When another caller is already refreshing, the previous snapshot is
        returned; only the very first read waits for a snapshot to exist.
        """
        if self.is_stale():
            waiting = self.current() is None
            if self._refresh_lock.acquire(blocking=waiting):
                try:
                    # another reader may have refreshed while we waited
                    if self.is_stale():
                        self._cycle(None)
                finally:
                    self._refresh_lock.release()
        return self.current()

    def run(self, stop: threading.Event) -> None:
        """Refresh every interval until ``stop`` is set."""
        logger.info(f"starting refresh loop every {self.interval:g}s")
        while not stop.is_set():
            self.refresh(cancel=stop)
            if stop.wait(self.interval):
                break
        logger.info("refresh loop stopped")

    def start(self, stop: threading.Event) -> threading.Thread:
        """Run the refresh loop in a daemon thread."""
        thread = threading.Thread(target=self.run, args=(stop,), name='releasedrift-refresh', daemon=True)
        thread.start()
        return thread
