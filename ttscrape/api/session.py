"""
Session types shared by the API client.

A session bundles the msToken with the headers and query parameters that make
a request look like it came from a real browser. ``BrowserFreeSession`` holds
nothing else; ``LiveSession`` additionally owns the automated browser that the
values were harvested from.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional

import aiohttp

from ttscrape.exceptions import DecodeError, SessionInitError, TransportError

from .browser import BrowserHandle, launch_browser
from .fingerprint import (
    BASE_URL,
    build_headers,
    build_params,
    default_headers,
    default_params,
)

log = logging.getLogger(__name__)


@dataclass
class Session:
    """Headers, parameters and token used to sign requests."""

    ms_token: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)
    base_url: str = BASE_URL

    browser_free: ClassVar[bool] = True

    def merge(
        self,
        params: Optional[dict[str, str]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> tuple[dict[str, str], dict[str, str]]:
        """Overlays call-level params/headers on the session's own values."""
        merged_params = {**self.params, **(params or {})}
        merged_headers = {**self.headers, **(headers or {})}
        return merged_params, merged_headers

    async def request(
        self,
        http: aiohttp.ClientSession,
        endpoint: str,
        params: Optional[dict[str, str]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        """
        Issues a signed GET request and decodes the JSON object it returns.

        Args:
            http: The transport used for the call.
            endpoint: Path under ``base_url`` (e.g. ``/api/music/detail/``).
            params: Call-level query parameters, win over session values.
            headers: Call-level headers, win over session values.

        Raises:
            TransportError: On connection failures, timeouts or HTTP errors.
            DecodeError: If the body is not a JSON object.
        """
        query, request_headers = self.merge(params, headers)
        url = self.base_url.rstrip("/") + endpoint

        try:
            async with http.get(url, params=query, headers=request_headers) as r:
                r.raise_for_status()
                body = await r.read()
        except aiohttp.ClientResponseError as e:
            raise TransportError(f"HTTP {e.status} from {endpoint}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"Request to {endpoint} failed: {e!r}") from e

        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(
                f"Response from {endpoint} is not valid JSON ({len(body)} bytes)"
            ) from e

        if not isinstance(data, dict):
            raise DecodeError(
                f"Response from {endpoint} is a JSON {type(data).__name__}, "
                "expected an object"
            )
        return data

    async def close(self) -> None:
        """Releases resources held by the session."""


@dataclass
class BrowserFreeSession(Session):
    """A session that signs requests without any running browser."""

    browser_free: ClassVar[bool] = True

    @classmethod
    def create(cls, ms_token: str, base_url: str = BASE_URL) -> "BrowserFreeSession":
        """Builds a session from desktop-Chrome fingerprint defaults."""
        return cls(
            ms_token=ms_token,
            headers=default_headers(),
            params=default_params(ms_token),
            base_url=base_url,
        )


@dataclass
class LiveSession(Session):
    """
    A session backed by an automated browser.

    The browser is only used to harvest the fingerprint; API calls go through
    plain HTTP like every other session.
    """

    handle: Optional[BrowserHandle] = field(default=None, repr=False)

    browser_free: ClassVar[bool] = False

    @classmethod
    async def create(
        cls,
        start_url: str,
        ms_token: str = "",
        *,
        proxy: str = "",
        headless: bool = True,
        browser: str = "chromium",
        timeout: float = 30.0,
        base_url: str = BASE_URL,
    ) -> "LiveSession":
        """
        Launches a browser, opens ``start_url`` and harvests its fingerprint.

        Raises:
            SessionInitError: If launching, navigating or harvesting fails.
        """
        handle = await launch_browser(
            start_url,
            browser=browser,
            headless=headless,
            proxy=proxy,
            timeout=timeout,
        )

        try:
            user_agent, language = await handle.harvest()
        except Exception as e:
            await handle.close()
            raise SessionInitError(f"Could not read browser fingerprint: {e}") from e
        except BaseException:
            await handle.close()
            raise

        log.debug(f"Harvested fingerprint: language={language!r}")
        return cls(
            ms_token=ms_token,
            headers=build_headers(user_agent, language),
            params=build_params(ms_token, user_agent, language),
            base_url=base_url,
            handle=handle,
        )

    async def demote(self) -> BrowserFreeSession:
        """Closes the browser and returns a browser-free copy of this session."""
        await self.close()
        return BrowserFreeSession(
            ms_token=self.ms_token,
            headers=self.headers,
            params=self.params,
            base_url=self.base_url,
        )

    async def close(self) -> None:
        if self.handle is not None:
            handle, self.handle = self.handle, None
            await handle.close()
