"""
Wiring of the refresh engine from a validated configuration.
"""

import logging
from typing import Optional

from .config import AppConfig, BoshConfig
from .errors import FetchError
from .exit_codes import APIError, AuthError, ConfigError
from .infra import GitHubClient, DirectorClient, DirectorAuthError
from .infra.director_client import read_ca_cert
from .services import CatalogService, DeploymentService, SnapshotBuilder

logger = logging.getLogger(__name__)


def connect_director(bosh: BoshConfig, session=None) -> DirectorClient:
    """
    Connect and authenticate to the BOSH Director.

    Raises:
        ConfigError: If the CA certificate file does not exist
        AuthError: If the Director rejects the configured credentials
        APIError: If the Director cannot be reached
    """
    try:
        ca_cert = read_ca_cert(bosh.ca_cert)
    except FileNotFoundError as e:
        raise ConfigError(f"invalid bosh configuration: {e}")

    logger.info(f"connecting to bosh director at {bosh.url}")
    try:
        return DirectorClient.connect(
            bosh.url,
            username=bosh.username,
            password=bosh.password,
            client_id=bosh.client_id,
            client_secret=bosh.client_secret,
            ca_cert=ca_cert,
            proxy=bosh.proxy or None,
            timeout=bosh.timeout,
            session=session,
        )
    except DirectorAuthError as e:
        raise AuthError(f"unable to authenticate against bosh director: {e}")
    except FetchError as e:
        raise APIError(f"unable to connect to bosh director: {e}")


def build_snapshot_builder(
    config: AppConfig,
    github: Optional[GitHubClient] = None,
    director: Optional[DirectorClient] = None,
    with_deployments: bool = True,
) -> SnapshotBuilder:
    """
    Build the refresh engine for ``config``.

    Args:
        config: Validated configuration
        github: GitHub client (created from config if None)
        director: Director client (connected from config if None)
        with_deployments: Read and correlate live deployments
    """
    github = github or GitHubClient(token=config.github.token, timeout=config.github.timeout)
    deployments = None
    if with_deployments:
        director = director or connect_director(config.bosh)
        deployments = DeploymentService(director, config.bosh.excludes)

    return SnapshotBuilder(
        CatalogService(github),
        deployments,
        config.github.generic_releases,
        config.github.manifest_releases,
    )
