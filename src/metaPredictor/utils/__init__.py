"""
Utility modules for metaPredictor.

This module contains various utility functions and classes.
"""

from .logger import get_logger, setup_logging
from .config import Config, ConfigManager
from .helpers import ensure_directory, format_time, load_object, save_json, save_object

__all__ = [
    "get_logger",
    "setup_logging",
    "Config",
    "ConfigManager",
    "ensure_directory",
    "format_time",
    "load_object",
    "save_json",
    "save_object",
]
