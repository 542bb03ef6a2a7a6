"""Package logger. The library never configures handlers itself."""

import logging

logger = logging.getLogger("shot_compensation")
logger.addHandler(logging.NullHandler())

__all__ = ['logger']
