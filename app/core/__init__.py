"""
Core module initialization.
Exports configuration, logging and error utilities.
"""

from app.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from app.core.exceptions import AppError

__all__ = ["get_settings", "setup_logging", "Settings", "EnvironmentMode", "AppError"]
