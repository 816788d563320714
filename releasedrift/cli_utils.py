"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import logging
import sys
from functools import wraps

import click

from .config import load_config, parse_config, AppConfig
from .exit_codes import SUCCESS, API_ERROR, GENERAL_ERROR, INTERRUPTED, CommandError
from .errors import ReleaseDriftError
from .logging_setup import setup_logging

logger = logging.getLogger(__name__)


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Consistent error handling with specific exit codes
    - Errors reported on stderr as log lines and on stdout as a JSON object
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            code = func(*args, **kwargs)
        except KeyboardInterrupt:
            logger.error("interrupted by user")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except CommandError as e:
            _report(e, e.exit_code)
            sys.exit(e.exit_code)
        except ReleaseDriftError as e:
            _report(e, API_ERROR)
            sys.exit(API_ERROR)
        except Exception as e:
            logger.exception("command failed")
            _report(e, GENERAL_ERROR)
            sys.exit(GENERAL_ERROR)
        sys.exit(code or SUCCESS)

    return wrapper


def _report(error: Exception, exit_code: int) -> None:
    logger.error(str(error))
    error_obj = {
        "error": str(error),
        "type": type(error).__name__,
        "exit_code": exit_code,
    }
    click.echo(json.dumps(error_obj, ensure_ascii=False))


def config_option(func):
    """Add the --config option, defaulting to RELEASEDRIFT_CONFIG or ./config.yml."""
    return click.option(
        '-c', '--config', 'config_path',
        default=None,
        type=click.Path(dir_okay=False),
        help='Configuration file path (env: RELEASEDRIFT_CONFIG, default: config.yml)',
    )(func)


def load_app_config(config_path, log_level=None) -> AppConfig:
    """
    Load, validate and apply the logging section of the configuration.

    Raises:
        ConfigError: On a missing or invalid configuration
    """
    config = parse_config(load_config(config_path))
    setup_logging(
        level=log_level or config.log.level,
        json_output=config.log.json,
        director_level=config.bosh.log_level,
    )
    return config
