"""
Handles the 'serve' command: Prometheus endpoint plus periodic refreshes.
"""

import logging
import signal
import threading

import click

from ..app import build_snapshot_builder
from ..cli_utils import standard_command, config_option, load_app_config
from ..reporting import (
    MetricsServer,
    build_registry,
    parse_listen_address,
    DEFAULT_LISTEN_ADDRESS,
    DEFAULT_NAMESPACE,
)
from ..services import RefreshScheduler

logger = logging.getLogger(__name__)


@click.command(name='serve')
@config_option
@click.option('--listen-address', default=DEFAULT_LISTEN_ADDRESS, show_default=True,
              envvar='RELEASEDRIFT_WEB_LISTEN_ADDRESS',
              help='Address to listen on for metrics (env: RELEASEDRIFT_WEB_LISTEN_ADDRESS)')
@click.option('--metrics-namespace', default=DEFAULT_NAMESPACE, show_default=True,
              envvar='RELEASEDRIFT_METRICS_NAMESPACE',
              help='Metrics namespace (env: RELEASEDRIFT_METRICS_NAMESPACE)')
@click.option('--metrics-environment', required=True,
              envvar='RELEASEDRIFT_METRICS_ENVIRONMENT',
              help='Environment label attached to metrics (env: RELEASEDRIFT_METRICS_ENVIRONMENT)')
@click.option('-v', '--verbose', is_flag=True, help='Enable debug logging')
@standard_command
def serve_handler(config_path, listen_address, metrics_namespace, metrics_environment, verbose):
    """Expose release and deployment drift as Prometheus metrics.

    Releases and deployments are refreshed every github.update_interval;
    scrapes always read the last completed refresh. SIGINT and SIGTERM
    stop the refresh loop and the HTTP server.

    Examples:

    \b
        releasedrift serve --metrics-environment prod
        releasedrift serve -c /etc/releasedrift.yml --listen-address 127.0.0.1:9362 --metrics-environment dev
    """
    try:
        host, port = parse_listen_address(listen_address)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--listen-address')

    config = load_app_config(config_path, 'debug' if verbose else None)
    scheduler = RefreshScheduler(build_snapshot_builder(config), config.github.update_interval)
    server = MetricsServer(build_registry(scheduler, metrics_namespace, metrics_environment))

    stop = threading.Event()

    def shutdown(signum, frame):
        logger.info(f"received signal {signum}, shutting down")
        stop.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    server.start(host, port)
    try:
        scheduler.run(stop)
    finally:
        server.stop()
