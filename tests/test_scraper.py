"""Tests for the concurrent sound scraper."""

import asyncio

import pytest

from ttscrape.api.sound import MUSIC_DETAIL_ENDPOINT, Sound
from ttscrape.core.scraper import ConcurrentSoundScraper
from ttscrape.exceptions import SoundFetchError, TransportError
from ttscrape.models.config import RequestOptions
from ttscrape.models.stats import ScrapeStats


class FakeAPI:
    """Minimal client: a pool of ``pool_size`` sessions and canned responses."""

    def __init__(self, pool_size: int = 2, failing: tuple = (), delay: float = 0.01):
        self.sessions = [object() for _ in range(pool_size)]
        self.failing = set(failing)
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    def sound(self, sound_id: str) -> Sound:
        return Sound(sound_id, self)

    async def make_request(self, endpoint, params=None, headers=None, session_index=0):
        self.calls.append((endpoint, dict(params or {}), session_index))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

        if endpoint == MUSIC_DETAIL_ENDPOINT:
            sound_id = params["musicId"]
            if sound_id in self.failing:
                raise TransportError(f"HTTP 403 from {endpoint}")
            return {"musicInfo": {"title": f"Sound {sound_id}", "duration": 10}}

        cursor = int(params["cursor"])
        return {
            "itemList": [{"id": f"{params['musicID']}-{i}"} for i in range(cursor, cursor + 30)],
            "hasMore": True,
            "cursor": cursor + 30,
        }

    def detail_sessions(self) -> dict[str, int]:
        return {
            params["musicId"]: index
            for endpoint, params, index in self.calls
            if endpoint == MUSIC_DETAIL_ENDPOINT
        }


@pytest.mark.asyncio
async def test_run_collects_every_sound():
    api = FakeAPI()
    scraper = ConcurrentSoundScraper(api, max_concurrency=4, video_count=3)

    stats = await scraper.run(["1", "2", "3"])

    assert stats.total_sounds == 3
    assert stats.successful == 3
    assert stats.failed == 0
    assert stats.videos_collected == 9
    assert set(stats.results) == {"1", "2", "3"}
    assert stats.results["2"].info["musicInfo"]["title"] == "Sound 2"
    assert [v["id"] for v in stats.results["2"].videos] == ["2-0", "2-1", "2-2"]


@pytest.mark.asyncio
async def test_duplicates_are_scraped_once():
    api = FakeAPI()
    stats = await ConcurrentSoundScraper(api, video_count=0).run(["1", "2", "1", "2"])

    assert stats.total_sounds == 2
    assert len(api.calls) == 2


@pytest.mark.asyncio
async def test_failures_are_captured():
    api = FakeAPI(failing=("2",))
    stats = await ConcurrentSoundScraper(api, video_count=1).run(["1", "2", "3"])

    assert stats.successful == 2
    assert stats.failed == 1
    result = stats.results["2"]
    assert not result.ok
    assert isinstance(result.error, SoundFetchError)
    assert result.videos == []
    assert stats.to_report()["results"]["2"]["error"].startswith("Could not fetch")


class CrashingVideosAPI(FakeAPI):
    """Detail works, but listing videos fails outside the client's error types."""

    async def make_request(self, endpoint, params=None, headers=None, session_index=0):
        if endpoint != MUSIC_DETAIL_ENDPOINT:
            raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        return await super().make_request(endpoint, params, headers, session_index)


@pytest.mark.asyncio
async def test_unexpected_video_error_is_captured():
    api = CrashingVideosAPI()
    scraper = ConcurrentSoundScraper(api, video_count=3)

    stats = await asyncio.wait_for(scraper.run(["1", "2"]), 5)

    assert stats.failed == 2
    result = stats.results["1"]
    assert isinstance(result.error, UnicodeDecodeError)
    assert result.info["musicInfo"]["title"] == "Sound 1"


@pytest.mark.asyncio
async def test_crashing_scrape_still_yields_a_result(monkeypatch):
    scraper = ConcurrentSoundScraper(FakeAPI(), video_count=0)

    async def crash(sound_id, position=0):
        raise RuntimeError(f"cannot scrape {sound_id}")

    monkeypatch.setattr(scraper, "scrape_sound", crash)

    stats = await asyncio.wait_for(scraper.run(["1", "2"]), 5)

    assert stats.failed == 2
    assert str(stats.results["2"].error) == "cannot scrape 2"


@pytest.mark.asyncio
async def test_concurrency_is_bounded():
    api = FakeAPI(delay=0.02)
    scraper = ConcurrentSoundScraper(api, max_concurrency=2, video_count=0)

    await scraper.run([str(i) for i in range(8)])

    assert api.max_in_flight == 2


@pytest.mark.asyncio
async def test_sessions_assigned_round_robin():
    api = FakeAPI(pool_size=2)
    await ConcurrentSoundScraper(api, video_count=0).run(["a", "b", "c", "d"])
    assert api.detail_sessions() == {"a": 0, "b": 1, "c": 0, "d": 1}


@pytest.mark.asyncio
async def test_explicit_options_override_round_robin():
    api = FakeAPI(pool_size=3)
    options = RequestOptions(session_index=2, ms_token="tok")
    await ConcurrentSoundScraper(api, video_count=0, options=options).run(["a", "b"])

    assert api.detail_sessions() == {"a": 2, "b": 2}
    assert all(params["msToken"] == "tok" for _, params, _ in api.calls)


@pytest.mark.asyncio
async def test_stream_yields_in_completion_order():
    api = FakeAPI()
    scraper = ConcurrentSoundScraper(api, max_concurrency=1, video_count=0)
    seen = [result.sound_id async for result in scraper.stream(["x", "y", "z"])]
    assert seen == ["x", "y", "z"]


@pytest.mark.asyncio
async def test_stream_stopped_early_cancels_pending():
    api = FakeAPI(delay=0.05)
    scraper = ConcurrentSoundScraper(api, max_concurrency=1, video_count=0)

    stream = scraper.stream([str(i) for i in range(5)])
    first = await stream.__anext__()
    await stream.aclose()
    await asyncio.sleep(0.1)

    assert first.ok
    assert len(api.calls) <= 2


@pytest.mark.asyncio
async def test_empty_input():
    stats = await ConcurrentSoundScraper(FakeAPI()).run([])
    assert stats.total_sounds == 0
    assert stats.results == {}


@pytest.mark.asyncio
async def test_run_fills_given_stats():
    stats = ScrapeStats()
    returned = await ConcurrentSoundScraper(FakeAPI(), video_count=0).run(["1"], stats)
    assert returned is stats
    assert stats.successful == 1
    assert stats.wall_time > 0
