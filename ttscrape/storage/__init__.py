"""
Storage Layer.

This package manages the application's on-disk configuration.
"""

from .config_manager import ConfigManager

__all__ = ["ConfigManager"]
