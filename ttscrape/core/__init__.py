"""
Core orchestration engine.

The `ConcurrentSoundScraper` fans sound scrapes out over a shared session pool
and collects their results as they complete.
"""

from .scraper import ConcurrentSoundScraper

__all__ = ["ConcurrentSoundScraper"]
