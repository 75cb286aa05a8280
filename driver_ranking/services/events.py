"""
Event recording — append structured audit events to the Mongo logs collection.

Recording failure never blocks the pipeline.
"""
import logging
from typing import Any, Callable, Dict

from driver_ranking.config import EVENT_SOURCE
from driver_ranking.pipeline.base import utcnow

logger = logging.getLogger('services.events')

SCHEMA_VERSION = 1


class EventRecorder:
    """
    Callable sink: recorder(level, message, context, admin_log=False).

    Takes a zero-arg getter for the collection so the Mongo connection is only
    opened when the first event is written.
    """

    def __init__(self, collection_getter: Callable, source: str = None):
        self._collection_getter = collection_getter
        self.source = source or EVENT_SOURCE

    def __call__(self, level: str, message: str, context: Dict[str, Any] = None, admin_log: bool = False):
        entry = {
            'level': level,
            'adminLog': admin_log,
            'message': message,
            **(context or {}),
            'timestamp': utcnow(),
            '_schemaVersion': SCHEMA_VERSION,
            'source': self.source,
        }
        try:
            self._collection_getter().insert_one(entry)
        except Exception as e:
            logger.error("Failed to record event '%s': %s", message, e)
