"""
Async client for the TikTok web API: owns the session pool and dispatches
signed requests through it.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, Optional

import aiohttp

from ttscrape.exceptions import SessionIndexError, SessionInitError
from ttscrape.models.config import ClientConfig

from .session import BrowserFreeSession, LiveSession, Session
from .sound import Sound

log = logging.getLogger(__name__)


class TikTokAPI:
    """
    Client for the TikTok web API.

    Sessions are created once with ``create_sessions`` and then shared by every
    request. Creating or closing sessions must not overlap with requests in
    flight; dispatching itself only reads the pool.

    Usage:
        async with TikTokAPI(ClientConfig(browser_free=True)) as api:
            await api.create_sessions(1, [ms_token])
            info = await api.sound("7277237345823230725").info()
    """

    def __init__(self, config: Optional[ClientConfig] = None):
        self.config = config or ClientConfig()
        self.sessions: list[Session] = []
        self._http: Optional[aiohttp.ClientSession] = None

    @property
    def headless(self) -> bool:
        return self.config.headless

    @headless.setter
    def headless(self, value: bool) -> None:
        self.config.headless = value

    @property
    def browser_free(self) -> bool:
        return self.config.browser_free

    @browser_free.setter
    def browser_free(self, value: bool) -> None:
        self.config.browser_free = value

    @property
    def start_url(self) -> str:
        return self.config.base_url

    async def __aenter__(self) -> "TikTokAPI":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _initialize_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
            )
        return self._http

    async def create_sessions(
        self,
        num_sessions: int = 1,
        ms_tokens: Sequence[str] = (),
        sleep_after: Optional[float] = None,
        browser: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Populates the pool with ``num_sessions`` sessions.

        With ``browser_free`` enabled and at least one token per session,
        browser-free sessions are built straight from the tokens; empty tokens
        are skipped. Whatever is still missing is filled with live browser
        sessions, the i-th of which takes the i-th token (empty past the end of
        the list); those with a token are demoted when browser-free is on.

        Sessions created before a failure stay in the pool, so callers should
        ``close()`` the client even when this raises.

        Args:
            num_sessions: Number of sessions wanted.
            ms_tokens: msTokens, indexed from the start by both phases.
            sleep_after: Pause after each live session, in seconds.
            browser: Playwright engine for live sessions.
            timeout: Deadline for the whole call, in seconds.

        Raises:
            SessionInitError: If a live session cannot be created or the
            deadline expires.
        """
        sleep_after = self.config.sleep_after if sleep_after is None else sleep_after
        browser = browser or self.config.browser
        timeout = self.config.session_timeout if timeout is None else timeout

        try:
            await asyncio.wait_for(
                self._populate(num_sessions, list(ms_tokens), sleep_after, browser),
                timeout,
            )
        except asyncio.TimeoutError as e:
            raise SessionInitError(
                f"Session creation did not finish within {timeout:.0f}s "
                f"({len(self.sessions)}/{num_sessions} sessions ready)."
            ) from e

    async def _populate(
        self, num_sessions: int, ms_tokens: list[str], sleep_after: float, browser: str
    ) -> None:
        created = 0

        if self.browser_free and len(ms_tokens) >= num_sessions:
            for token in ms_tokens[:num_sessions]:
                if not token:
                    continue
                self.sessions.append(
                    BrowserFreeSession.create(token, base_url=self.config.base_url)
                )
                created += 1
            log.debug(f"Created {created} browser-free session(s) from tokens.")

        # The live phase counts tokens from the start of the list again
        for i in range(num_sessions - created):
            ms_token = ms_tokens[i] if i < len(ms_tokens) else ""
            session = await self._create_live_session(ms_token, browser)
            self.sessions.append(session)
            await asyncio.sleep(sleep_after)

    async def _create_live_session(self, ms_token: str, browser: str) -> Session:
        """Creates a browser session and demotes it when browser-free is on."""
        log.info(
            f"Launching {browser} session "
            f"({'headless' if self.headless else 'headed'})..."
        )
        session = await LiveSession.create(
            self.start_url,
            ms_token,
            proxy=self.config.proxy,
            headless=self.headless,
            browser=browser,
            timeout=self.config.navigation_timeout,
            base_url=self.config.base_url,
        )

        if self.browser_free and session.ms_token:
            log.debug("Fingerprint harvested, closing browser.")
            return await session.demote()
        return session

    async def make_request(
        self,
        endpoint: str,
        params: Optional[dict[str, str]] = None,
        headers: Optional[dict[str, str]] = None,
        session_index: int = 0,
    ) -> dict[str, Any]:
        """
        Sends a GET request through one of the pool's sessions.

        Raises:
            SessionIndexError: If ``session_index`` is not in the pool.
            TransportError: On network or HTTP failures.
            DecodeError: If the body is not a JSON object.
        """
        if not 0 <= session_index < len(self.sessions):
            raise SessionIndexError(
                f"Session index {session_index} out of range "
                f"({len(self.sessions)} session(s) in pool)."
            )

        session = self.sessions[session_index]
        http = await self._initialize_session()
        log.debug(f"GET {endpoint} via session {session_index}")
        return await session.request(http, endpoint, params, headers)

    async def close(self) -> None:
        """Closes every session and the HTTP transport. Safe to call twice."""
        sessions, self.sessions = self.sessions, []
        for session in sessions:
            await session.close()

        if self._http and not self._http.closed:
            await self._http.close()
        self._http = None

    def sound(self, sound_id: str) -> Sound:
        """Returns an accessor for the sound with the given ID."""
        return Sound(sound_id, self)
