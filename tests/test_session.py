"""Tests for browser-free and live sessions."""

import pytest

from ttscrape.api.fingerprint import DEFAULT_USER_AGENT
from ttscrape.api.session import BrowserFreeSession, LiveSession
from ttscrape.exceptions import SessionInitError


class TestBrowserFreeSession:
    def test_create_uses_defaults(self):
        session = BrowserFreeSession.create("tok")
        assert session.browser_free is True
        assert session.ms_token == "tok"
        assert session.params["msToken"] == "tok"
        assert session.headers["User-Agent"] == DEFAULT_USER_AGENT

    def test_merge_call_values_win(self):
        session = BrowserFreeSession.create("tok")
        params, headers = session.merge(
            {"aid": "42", "musicId": "7"}, {"User-Agent": "Custom/1.0"}
        )
        assert params["aid"] == "42"
        assert params["musicId"] == "7"
        assert params["msToken"] == "tok"
        assert headers["User-Agent"] == "Custom/1.0"
        assert headers["Referer"] == "https://www.tiktok.com/"
        # Session values are left untouched
        assert session.params["aid"] == "1988"

    def test_merge_without_overrides(self):
        session = BrowserFreeSession.create("tok")
        params, headers = session.merge()
        assert params == session.params
        assert headers == session.headers
        assert params is not session.params

    @pytest.mark.asyncio
    async def test_close_is_noop(self):
        session = BrowserFreeSession.create("tok")
        await session.close()
        await session.close()


class TestLiveSession:
    @pytest.mark.asyncio
    async def test_create_harvests_fingerprint(self, fake_launcher):
        session = await LiveSession.create(
            "https://www.tiktok.com", "tok", proxy="http://proxy:8080", headless=False
        )
        assert session.browser_free is False
        assert session.headers["User-Agent"] == "FakeBrowser/1.0"
        assert session.headers["Accept-Language"] == "fr-FR"
        assert session.params["browser_version"] == "FakeBrowser/1.0"
        assert session.params["app_language"] == "fr-FR"
        assert session.params["msToken"] == "tok"
        assert session.handle is fake_launcher.handles[0]

        launch = fake_launcher.launches[0]
        assert launch["start_url"] == "https://www.tiktok.com"
        assert launch["proxy"] == "http://proxy:8080"
        assert launch["headless"] is False
        await session.close()

    @pytest.mark.asyncio
    async def test_create_without_token(self, fake_launcher):
        session = await LiveSession.create("https://www.tiktok.com")
        assert "msToken" not in session.params
        await session.close()

    @pytest.mark.asyncio
    async def test_harvest_failure_closes_browser(self, fake_launcher):
        fake_launcher.fail_harvest = True
        with pytest.raises(SessionInitError, match="fingerprint"):
            await LiveSession.create("https://www.tiktok.com", "tok")
        assert fake_launcher.handles[0].close_calls == 1

    @pytest.mark.asyncio
    async def test_launch_failure_propagates(self, fake_launcher):
        fake_launcher.fail_on_launch = 1
        with pytest.raises(SessionInitError):
            await LiveSession.create("https://www.tiktok.com", "tok")
        assert fake_launcher.handles == []

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, fake_launcher):
        session = await LiveSession.create("https://www.tiktok.com", "tok")
        handle = session.handle
        await session.close()
        await session.close()
        assert handle.close_calls == 1
        assert session.handle is None

    @pytest.mark.asyncio
    async def test_demote_keeps_fingerprint(self, fake_launcher):
        live = await LiveSession.create("https://www.tiktok.com", "tok")
        handle = live.handle

        session = await live.demote()

        assert isinstance(session, BrowserFreeSession)
        assert session.browser_free is True
        assert session.headers == live.headers
        assert session.params == live.params
        assert session.ms_token == "tok"
        assert handle.close_calls == 1
