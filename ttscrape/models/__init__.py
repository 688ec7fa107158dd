"""
Data Models Layer.

This package contains the Pydantic models and dataclasses that define the core
data structures used throughout the client, such as configuration and results.
"""

from .config import ClientConfig, RequestOptions, ScrapeConfig
from .stats import ScrapeStats, SoundResult

__all__ = [
    "ClientConfig",
    "RequestOptions",
    "ScrapeConfig",
    "ScrapeStats",
    "SoundResult",
]
