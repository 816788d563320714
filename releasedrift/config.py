"""
Configuration loading for releasedrift.

The configuration file is YAML (JSON is accepted too). Values are merged
over the defaults, then overridden from ``RELEASEDRIFT_SECTION_KEY``
environment variables, and finally validated into a frozen AppConfig.
"""

import os
import re
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .domain import (
    Formatter,
    ReleaseSource,
    ManifestSource,
    REF_TYPES,
    RELEASE,
    DEFAULT_FORMAT_MATCH,
    DEFAULT_FORMAT_REPLACE,
)
from .exit_codes import ConfigError
from .logging_setup import LEVELS

logger = logging.getLogger(__name__)

ENV_PREFIX = "RELEASEDRIFT_"
CONFIG_ENV_VAR = "RELEASEDRIFT_CONFIG"
DEFAULT_CONFIG_FILES = ('config.yml', 'config.yaml', 'config.json')

SECRET_KEYS = ('password', 'client_secret', 'token')

_DURATION_UNITS = {
    'ns': 1e-9,
    'us': 1e-6,
    'µs': 1e-6,
    'ms': 1e-3,
    's': 1.0,
    'm': 60.0,
    'h': 3600.0,
}
_DURATION_RE = re.compile(r'(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)')


def get_config_path(path: Optional[str] = None) -> Path:
    """Get the path to the configuration file.

    Checks in order:
    1. Explicit ``path`` (--config option)
    2. RELEASEDRIFT_CONFIG environment variable
    3. config.yml, config.yaml or config.json in the working directory
    """
    if path:
        return Path(path).expanduser()

    if CONFIG_ENV_VAR in os.environ:
        return Path(os.environ[CONFIG_ENV_VAR]).expanduser()

    for filename in DEFAULT_CONFIG_FILES:
        candidate = Path(filename)
        if candidate.exists():
            return candidate

    return Path(DEFAULT_CONFIG_FILES[0])


def get_default_config() -> Dict[str, Any]:
    """Get default configuration."""
    return {
        "log": {
            "json": False,
            "level": "info",
        },
        "bosh": {
            "url": "",
            "log_level": "error",
            "ca_cert": "",
            "username": "",
            "password": "",
            "client_id": "",
            "client_secret": "",
            "excludes": [],
            "proxy": "",
            "timeout": 30,
        },
        "github": {
            "token": "",
            "update_interval": "4h",
            "timeout": 30,
            "manifest_releases": {},
            "generic_releases": {},
        },
    }


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            # Recursively merge nested dictionaries
            merged[key] = merge_configs(merged[key], value)
        else:
            # Override or add new key
            merged[key] = value

    return merged


def apply_env_overrides(config, environ=None):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: RELEASEDRIFT_SECTION_KEY
    For example: RELEASEDRIFT_BOSH_CLIENT_SECRET=secret
    """
    environ = os.environ if environ is None else environ

    for env_key, value in environ.items():
        if not env_key.startswith(ENV_PREFIX) or env_key == CONFIG_ENV_VAR:
            continue

        key_parts = env_key[len(ENV_PREFIX):].lower().split('_')

        # Convert value
        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts = config_key.split('_')
                if key_parts[i:i + len(config_key_parts)] == config_key_parts:
                    if len(config_key_parts) > best_match_len:
                        best_match_len = len(config_key_parts)
                        matched_key = config_key

            if matched_key is None:
                break

            # End of the env var: this is the key to set
            if i + best_match_len == len(key_parts):
                current_level[matched_key] = typed_value
                logger.debug(f"configuration key '{'.'.join(key_parts)}' set from {env_key}")
                break

            if not isinstance(current_level[matched_key], dict):
                # env var is longer than the configuration path
                break
            current_level = current_level[matched_key]
            i += best_match_len

    return config


def _read_file(config_path: Path) -> Dict[str, Any]:
    try:
        content = config_path.read_text()
    except OSError as e:
        raise ConfigError(f"unable to read configuration file {config_path}: {e}")

    if config_path.suffix.lower() == '.json':
        try:
            data = json.loads(content)
        except ValueError as e:
            raise ConfigError(f"invalid JSON configuration file {config_path}: {e}")
    else:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as yaml_error:
            # Fall back to JSON
            try:
                data = json.loads(content)
            except ValueError:
                raise ConfigError(f"invalid configuration file {config_path}: {yaml_error}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"configuration file {config_path} must contain a map")
    return data


def load_config(path: Optional[str] = None, environ=None) -> Dict[str, Any]:
    """
    Load the raw configuration: defaults, file, then environment overrides.

    Raises:
        ConfigError: If the configuration file is missing or unreadable
    """
    config_path = get_config_path(path)
    if not config_path.exists():
        raise ConfigError(f"configuration file {config_path} not found")

    logger.debug(f"loading configuration from {config_path}")
    config = merge_configs(get_default_config(), _read_file(config_path))
    return apply_env_overrides(config, environ)


def parse_duration(value) -> float:
    """
    Parse a duration string (``4h``, ``1h30m``) into seconds.

    Accepts ``1h30m``, ``90s``, ``500ms``, ``0`` and bare numbers (seconds).

    Raises:
        ConfigError: On an unparsable duration
    """
    if isinstance(value, bool):
        raise ConfigError(f"invalid duration '{value}'")
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip()
    if text == '0':
        return 0.0

    total = 0.0
    pos = 0
    for match in _DURATION_RE.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise ConfigError(f"invalid duration '{value}'")
    return total


@dataclass(frozen=True)
class LogConfig:
    json: bool = False
    level: str = 'info'


@dataclass(frozen=True)
class BoshConfig:
    """BOSH Director connection settings."""
    url: str
    log_level: str = 'error'
    ca_cert: str = ''
    username: str = ''
    password: str = ''
    client_id: str = ''
    client_secret: str = ''
    excludes: Tuple[str, ...] = ()
    proxy: str = ''
    timeout: float = 30.0


@dataclass(frozen=True)
class GitHubConfig:
    """GitHub access and tracked release sources."""
    token: str
    update_interval: float = 4 * 3600.0
    timeout: float = 30.0
    manifest_releases: Tuple[ManifestSource, ...] = ()
    generic_releases: Tuple[ReleaseSource, ...] = ()


@dataclass(frozen=True)
class AppConfig:
    """Validated releasedrift configuration."""
    bosh: BoshConfig
    github: GitHubConfig
    log: LogConfig = field(default_factory=LogConfig)


def _check_regex(expression: str, what: str) -> str:
    try:
        re.compile(expression)
    except re.error as e:
        raise ConfigError(f"invalid {what} regexp '{expression}': {e}")
    return expression


def _string_list(value, what: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list):
        raise ConfigError(f"expected {what} to be a list")
    return tuple(str(item) for item in value)


def _parse_types(value) -> Tuple[str, ...]:
    types = [t.lower() for t in _string_list(value, 'types')]
    if not types:
        return (RELEASE,)
    for ref_type in types:
        if ref_type not in REF_TYPES:
            raise ConfigError(f"invalid release type '{ref_type}'")
    return tuple(types)


def _parse_formatter(value) -> Formatter:
    if not value:
        return Formatter()
    if not isinstance(value, dict):
        raise ConfigError("expected format to be a map with 'match' and 'replace'")
    match = str(value.get('match', DEFAULT_FORMAT_MATCH))
    replace = str(value.get('replace', DEFAULT_FORMAT_REPLACE))
    return Formatter(match=_check_regex(match, 'format'), replace=replace)


def _source_fields(name: str, data) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ConfigError(f"invalid release '{name}': expected a map")
    try:
        owner = str(data.get('owner') or '')
        repo = str(data.get('repo') or '')
        if not owner:
            raise ConfigError("missing mandatory owner")
        if not repo:
            raise ConfigError("missing mandatory repo")
        return {
            'name': name,
            'owner': owner,
            'repo': repo,
            'types': _parse_types(data.get('types')),
            'formatter': _parse_formatter(data.get('format')),
            'deduplicate': bool(data.get('deduplicate', False)),
        }
    except ConfigError as e:
        raise ConfigError(f"invalid release '{name}': {e}")


def parse_generic_source(name: str, data) -> ReleaseSource:
    """Build a generic release source from its configuration entry."""
    return ReleaseSource(**_source_fields(name, data))


def parse_manifest_source(name: str, data) -> ManifestSource:
    """Build a manifest release source from its configuration entry."""
    fields = _source_fields(name, data)
    try:
        matchers = tuple(_check_regex(m, 'matcher') for m in _string_list(data.get('matchers'), 'matchers'))
        return ManifestSource(
            manifest=str(data.get('manifest') or ''),
            ops=_string_list(data.get('ops'), 'ops'),
            vars=_string_list(data.get('vars'), 'vars'),
            matchers=matchers,
            **fields,
        )
    except ConfigError as e:
        raise ConfigError(f"invalid manifest release '{name}': {e}")


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"invalid {name} configuration: expected a map")
    return section


def _level(value, section: str) -> str:
    level = str(value).lower()
    if level not in LEVELS:
        raise ConfigError(f"invalid {section} configuration: unknown log level '{value}'")
    return level


def _timeout(value, section: str) -> float:
    try:
        timeout = parse_duration(value)
    except ConfigError as e:
        raise ConfigError(f"invalid {section} configuration: timeout: {e}")
    if timeout <= 0:
        raise ConfigError(f"invalid {section} configuration: timeout must be positive")
    return timeout


def parse_bosh_config(section: Dict[str, Any]) -> BoshConfig:
    url = str(section.get('url') or '')
    if not url:
        raise ConfigError("invalid bosh configuration: missing mandatory url")
    excludes = tuple(_check_regex(f, 'exclude filter') for f in _string_list(section.get('excludes'), 'excludes'))
    return BoshConfig(
        url=url,
        log_level=_level(section.get('log_level') or 'error', 'bosh'),
        ca_cert=str(section.get('ca_cert') or ''),
        username=str(section.get('username') or ''),
        password=str(section.get('password') or ''),
        client_id=str(section.get('client_id') or ''),
        client_secret=str(section.get('client_secret') or ''),
        excludes=excludes,
        proxy=str(section.get('proxy') or ''),
        timeout=_timeout(section.get('timeout', 30), 'bosh'),
    )


def parse_github_config(section: Dict[str, Any], environ=None) -> GitHubConfig:
    environ = os.environ if environ is None else environ
    token = str(section.get('token') or environ.get('GITHUB_TOKEN') or '')
    if not token:
        raise ConfigError("invalid github configuration: missing mandatory github token")

    try:
        interval = parse_duration(section.get('update_interval') or '4h')
    except ConfigError:
        raise ConfigError("invalid github configuration: invalid duration format for update_interval")
    if interval <= 0:
        raise ConfigError("invalid github configuration: update_interval must be positive")

    manifests = section.get('manifest_releases') or {}
    generics = section.get('generic_releases') or {}
    if not isinstance(manifests, dict) or not isinstance(generics, dict):
        raise ConfigError("invalid github configuration: releases must be maps keyed by name")

    return GitHubConfig(
        token=token,
        update_interval=interval,
        timeout=_timeout(section.get('timeout', 30), 'github'),
        manifest_releases=tuple(parse_manifest_source(str(n), d) for n, d in sorted(manifests.items())),
        generic_releases=tuple(parse_generic_source(str(n), d) for n, d in sorted(generics.items())),
    )


def parse_config(config: Dict[str, Any], environ=None) -> AppConfig:
    """
    Validate a raw configuration into an AppConfig.

    Raises:
        ConfigError: On any missing or invalid value
    """
    log = _section(config, 'log')
    return AppConfig(
        log=LogConfig(json=bool(log.get('json', False)), level=_level(log.get('level') or 'info', 'log')),
        bosh=parse_bosh_config(_section(config, 'bosh')),
        github=parse_github_config(_section(config, 'github'), environ),
    )


def mask_secrets(config: Any) -> Any:
    """Return a copy of a raw configuration with secret values masked."""
    if isinstance(config, dict):
        masked = {}
        for key, value in config.items():
            if key in SECRET_KEYS and value:
                masked[key] = '********'
            else:
                masked[key] = mask_secrets(value)
        return masked
    if isinstance(config, list):
        return [mask_secrets(item) for item in config]
    return config
