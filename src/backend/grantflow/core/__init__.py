"""
Core module containing configuration, settings, and foundational utilities.
"""

from grantflow.core.config import get_settings, Settings
from grantflow.core.logging import get_logger, setup_logging

__all__ = ["get_settings", "Settings", "get_logger", "setup_logging"]
