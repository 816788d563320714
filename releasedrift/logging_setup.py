"""
Logging setup for releasedrift.

Modules log through ``logging.getLogger(__name__)``; this module only
installs the stderr handler, in text or JSON format.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

TEXT_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'

LEVELS = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warn': logging.WARNING,
    'warning': logging.WARNING,
    'error': logging.ERROR,
    'fatal': logging.CRITICAL,
    'critical': logging.CRITICAL,
}


def parse_level(level: str) -> int:
    """Map a level name (``info``, ``warn``...) to a logging level."""
    try:
        return LEVELS[str(level).lower()]
    except KeyError:
        raise ValueError(f"unknown log level '{level}'")


class JsonFormatter(logging.Formatter):
    """One JSON object per record, for log collectors."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            'time': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname.lower(),
            'logger': record.name,
            'msg': record.getMessage(),
        }
        if record.exc_info:
            payload['exception'] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str = 'info', json_output: bool = False,
                  director_level: Optional[str] = None, stream=None) -> logging.Handler:
    """
    Install a single stderr handler on the ``releasedrift`` logger.

    Args:
        level: Level name for releasedrift loggers
        json_output: Emit JSON records instead of text lines
        director_level: Separate level for the BOSH director client
        stream: Output stream (stderr if None)

    Returns:
        The installed handler
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger('releasedrift')
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(parse_level(level))

    if director_level:
        logging.getLogger('releasedrift.infra.director_client').setLevel(parse_level(director_level))
    return handler
