"""
TikTok API Layer.

This package handles sessions, request signing and all communication with the
TikTok web API.
"""

from .client import TikTokAPI
from .session import BrowserFreeSession, LiveSession, Session
from .sound import Sound

__all__ = ["BrowserFreeSession", "LiveSession", "Session", "Sound", "TikTokAPI"]
