"""
Runs many sound scrapes concurrently against the client's session pool.
"""

import asyncio
import logging
import time
from collections.abc import Iterable
from typing import AsyncGenerator, Optional

from ttscrape.api.client import TikTokAPI
from ttscrape.models.config import RequestOptions
from ttscrape.models.stats import ScrapeStats, SoundResult

log = logging.getLogger(__name__)


class ConcurrentSoundScraper:
    """
    Fetches info and videos for many sounds with bounded concurrency.

    Results are delivered in completion order. Failures are captured on the
    result instead of being raised.
    """

    def __init__(
        self,
        api: TikTokAPI,
        max_concurrency: int = 10,
        video_count: int = 5,
        options: Optional[RequestOptions] = None,
    ):
        """
        Args:
            api: Client whose sessions are already created.
            max_concurrency: Maximum number of sounds scraped at once.
            video_count: Videos to collect per sound (0 to skip).
            options: Request options; when ``None`` sessions are assigned
                round-robin.
        """
        self.api = api
        self.video_count = video_count
        self.options = options
        self.semaphore = asyncio.Semaphore(max_concurrency)

    def _options_for(self, position: int) -> RequestOptions:
        if self.options is not None:
            return self.options
        pool_size = max(len(self.api.sessions), 1)
        return RequestOptions(session_index=position % pool_size)

    async def scrape_sound(self, sound_id: str, position: int = 0) -> SoundResult:
        """Scrapes a single sound under the concurrency limit."""
        options = self._options_for(position)
        async with self.semaphore:
            start = time.monotonic()
            sound = self.api.sound(sound_id)
            result = SoundResult(sound_id=sound_id)
            try:
                result.info = await sound.info(options)
                if self.video_count > 0:
                    async for video in sound.videos(self.video_count, 0, options):
                        result.videos.append(video)
            except Exception as e:
                log.warning(f"[yellow]Failed to scrape sound {sound_id}: {e}[/yellow]")
                result.error = e
            result.elapsed = time.monotonic() - start
            return result

    async def stream(
        self, sound_ids: Iterable[str]
    ) -> AsyncGenerator[SoundResult, None]:
        """
        Yields one result per unique sound ID as soon as it is ready.

        Leaving the loop early cancels the scrapes still pending.
        """
        unique_ids = list(dict.fromkeys(sound_ids))
        if not unique_ids:
            return

        queue: asyncio.Queue[SoundResult] = asyncio.Queue()

        async def worker(sound_id: str, position: int) -> None:
            # Every task must put exactly one result, or the loop below never ends
            try:
                result = await self.scrape_sound(sound_id, position)
            except Exception as e:
                log.warning(f"[yellow]Scrape of sound {sound_id} crashed: {e!r}[/yellow]")
                result = SoundResult(sound_id=sound_id, error=e)
            await queue.put(result)

        log.debug(f"Scraping {len(unique_ids)} sounds...")
        tasks = [
            asyncio.create_task(worker(sid, i)) for i, sid in enumerate(unique_ids)
        ]
        try:
            for _ in range(len(tasks)):
                yield await queue.get()
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def run(
        self, sound_ids: Iterable[str], stats: Optional[ScrapeStats] = None
    ) -> ScrapeStats:
        """Scrapes every sound and returns the aggregated statistics."""
        unique_ids = list(dict.fromkeys(sound_ids))
        stats = stats or ScrapeStats()
        stats.total_sounds = len(unique_ids)
        async for result in self.stream(unique_ids):
            stats.record(result)
        stats.finish()
        return stats
