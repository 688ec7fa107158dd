"""
ttscrape: async client for the TikTok web API sound endpoints.
"""

__version__ = "0.1.0"
