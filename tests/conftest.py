"""Shared fixtures: an in-process fake TikTok API and a fake browser launcher."""

import asyncio
from typing import Any, Optional, Union

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from ttscrape.api.client import TikTokAPI
from ttscrape.exceptions import SessionInitError
from ttscrape.models.config import ClientConfig


class FakeTikTok:
    """Serves the music detail and item list endpoints and records requests."""

    def __init__(self):
        self.base_url = ""
        self.requests: list[dict[str, Any]] = []
        self.detail_payload: dict[str, Any] = {
            "musicInfo": {"title": "Original Sound", "duration": 15.7, "original": True},
            "statusCode": 0,
        }
        self.detail_body: Optional[Union[str, bytes]] = None
        self.item_list_body: Optional[bytes] = None
        self.detail_status = 200
        self.total_videos = 100

    def _record(self, request: web.Request) -> None:
        self.requests.append(
            {
                "path": request.path,
                "query": dict(request.query),
                "headers": request.headers.copy(),
            }
        )

    @staticmethod
    def _raw(body: Union[str, bytes]) -> web.Response:
        if isinstance(body, str):
            body = body.encode("utf-8")
        return web.Response(body=body, content_type="application/json")

    def requests_to(self, path: str) -> list[dict[str, Any]]:
        return [r for r in self.requests if r["path"] == path]

    async def music_detail(self, request: web.Request) -> web.Response:
        self._record(request)
        if self.detail_status != 200:
            return web.Response(status=self.detail_status, text="blocked")
        if self.detail_body is not None:
            return self._raw(self.detail_body)
        return web.json_response(self.detail_payload)

    async def item_list(self, request: web.Request) -> web.Response:
        self._record(request)
        if self.item_list_body is not None:
            return self._raw(self.item_list_body)
        cursor = int(request.query.get("cursor", "0"))
        count = int(request.query.get("count", "30"))
        end = min(cursor + count, self.total_videos)
        items = [{"id": str(i), "desc": f"video {i}"} for i in range(cursor, end)]
        return web.json_response(
            {"itemList": items, "hasMore": end < self.total_videos, "cursor": end}
        )


@pytest_asyncio.fixture
async def tiktok_server():
    fake = FakeTikTok()
    app = web.Application()
    app.router.add_get("/api/music/detail/", fake.music_detail)
    app.router.add_get("/api/music/item_list/", fake.item_list)

    server = TestServer(app)
    await server.start_server()
    fake.base_url = f"http://{server.host}:{server.port}"
    yield fake
    await server.close()


def make_config(base_url: str, **overrides: Any) -> ClientConfig:
    settings = {"browser_free": True, "base_url": base_url, "sleep_after": 0}
    settings.update(overrides)
    return ClientConfig(**settings)


@pytest_asyncio.fixture
async def api(tiktok_server):
    client = TikTokAPI(make_config(tiktok_server.base_url))
    yield client
    await client.close()


class FakeBrowserHandle:
    def __init__(
        self,
        user_agent: str,
        language: str,
        fail_harvest: bool = False,
        harvest_delay: float = 0.0,
    ):
        self.user_agent = user_agent
        self.language = language
        self.fail_harvest = fail_harvest
        self.harvest_delay = harvest_delay
        self.close_calls = 0

    async def harvest(self) -> tuple[str, str]:
        if self.harvest_delay:
            await asyncio.sleep(self.harvest_delay)
        if self.fail_harvest:
            raise RuntimeError("navigator is not defined")
        return self.user_agent, self.language

    async def close(self) -> None:
        self.close_calls += 1


class FakeLauncher:
    """Stands in for ``launch_browser``; records every launch."""

    def __init__(self):
        self.launches: list[dict[str, Any]] = []
        self.handles: list[FakeBrowserHandle] = []
        self.fail_on_launch: Optional[int] = None
        self.fail_harvest = False
        self.harvest_delay = 0.0
        self.delay = 0.0
        self.user_agent = "FakeBrowser/1.0"
        self.language = "fr-FR"

    async def __call__(self, start_url, *, browser, headless, proxy, timeout):
        self.launches.append(
            {
                "start_url": start_url,
                "browser": browser,
                "headless": headless,
                "proxy": proxy,
                "timeout": timeout,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_on_launch == len(self.launches):
            raise SessionInitError("Failed to launch chromium: boom")
        handle = FakeBrowserHandle(
            self.user_agent, self.language, self.fail_harvest, self.harvest_delay
        )
        self.handles.append(handle)
        return handle


@pytest.fixture
def fake_launcher(monkeypatch):
    launcher = FakeLauncher()
    monkeypatch.setattr("ttscrape.api.session.launch_browser", launcher)
    return launcher
