"""
Utility helpers shared across schemadelta packages.
"""

from .logging import configure_logging, get_logger, set_correlation_id, time_call
from .naming import migration_slug

__all__ = ["configure_logging", "get_logger", "migration_slug", "set_correlation_id", "time_call"]
