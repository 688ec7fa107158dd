"""
Builds the browser-fingerprint headers and query parameters that the TikTok
web API expects on every request.
"""

import random

BASE_URL = "https://www.tiktok.com"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.114 Safari/537.36"
)
DEFAULT_ACCEPT_LANGUAGE = "en-US,en;q=0.9"
DEFAULT_LANGUAGE = "en"
DEFAULT_BROWSER_LANGUAGE = "en-US"


def new_device_id() -> str:
    """Returns a fresh random 63-bit device identifier."""
    return str(random.getrandbits(63))


def build_headers(user_agent: str, accept_language: str) -> dict[str, str]:
    """Builds the browser-like request headers for a session."""
    return {
        "User-Agent": user_agent,
        "Accept-Language": accept_language,
        "Accept": "application/json, text/plain, */*",
        "Referer": f"{BASE_URL}/",
        "Origin": BASE_URL,
    }


def build_params(
    ms_token: str,
    user_agent: str,
    language: str,
    browser_language: str | None = None,
) -> dict[str, str]:
    """
    Builds the fingerprint query parameters for a session.

    A new ``device_id`` is generated on every call. ``msToken`` is only
    included when a token is given.

    Args:
        ms_token: The msToken cookie value, may be empty.
        user_agent: The browser user agent, also sent as ``browser_version``.
        language: The UI language (``app_language``, ``language``...).
        browser_language: The ``browser_language`` value; defaults to ``language``.
    """
    params = {
        "aid": "1988",
        "app_language": language,
        "app_name": "tiktok_web",
        "browser_language": browser_language or language,
        "browser_name": "Mozilla",
        "browser_online": "true",
        "browser_platform": "MacIntel",
        "browser_version": user_agent,
        "channel": "tiktok_web",
        "cookie_enabled": "true",
        "device_id": new_device_id(),
        "device_platform": "web",
        "focus_state": "true",
        "from_page": "fyp",
        "history_len": "1",
        "is_fullscreen": "false",
        "is_page_visible": "true",
        "language": language,
        "os": "mac",
        "priority_region": "",
        "referer": "",
        "region": "US",
        "screen_height": "1080",
        "screen_width": "1920",
        "tz_name": "America/New_York",
        "webcast_language": language,
    }

    if ms_token:
        params["msToken"] = ms_token

    return params


def default_headers() -> dict[str, str]:
    """Headers of a desktop Chrome browser, used when no browser is launched."""
    return build_headers(DEFAULT_USER_AGENT, DEFAULT_ACCEPT_LANGUAGE)


def default_params(ms_token: str) -> dict[str, str]:
    """Parameters of a desktop Chrome browser, used when no browser is launched."""
    return build_params(
        ms_token,
        DEFAULT_USER_AGENT,
        DEFAULT_LANGUAGE,
        browser_language=DEFAULT_BROWSER_LANGUAGE,
    )
