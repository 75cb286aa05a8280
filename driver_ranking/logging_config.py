"""
Console logging for the ranking job.

The CLI configures it before the run starts. Output goes to stderr so CI
runners keep it apart from anything the job prints; LOG_FORMAT=json switches
to one JSON object per line for log collectors.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone

TEXT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s — %(message)s'
TEXT_DATEFMT = '%Y-%m-%d %H:%M:%S'

# SDK and driver loggers held at WARNING
QUIET_LOGGERS = ('urllib3', 'botocore', 'boto3', 'openai', 'httpcore', 'httpx', 'pymongo')


class JSONFormatter(logging.Formatter):
    """timestamp / level / logger / message, plus exception when one is attached."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry)


def resolve_level(level_name=None) -> int:
    """--log-level, then LOG_LEVEL, then INFO. Unknown names fall back to INFO."""
    name = (level_name or os.getenv('LOG_LEVEL') or 'INFO').upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def build_handler(level: int, log_format: str = None) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if (log_format or os.getenv('LOG_FORMAT', 'text')).lower() == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT))
    return handler


def configure_logging(level_name=None):
    """Install the single stderr handler on the root logger. Safe to call again."""
    level = resolve_level(level_name)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(build_handler(level))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
