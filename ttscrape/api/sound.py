"""
The Sound resource: metadata of an audio track and the videos that use it.
"""

import asyncio
import logging
from typing import Any, AsyncGenerator, Optional, Protocol

from ttscrape.exceptions import (
    DecodeError,
    SoundFetchError,
    TransportError,
    TTScrapeError,
)
from ttscrape.models.config import RequestOptions

log = logging.getLogger(__name__)

MUSIC_DETAIL_ENDPOINT = "/api/music/detail/"
MUSIC_ITEM_LIST_ENDPOINT = "/api/music/item_list/"

# The item list endpoint serves at most this many items per page.
PAGE_SIZE = 30


class Dispatcher(Protocol):
    """Anything able to send a signed request through a pooled session."""

    async def make_request(
        self,
        endpoint: str,
        params: Optional[dict[str, str]] = None,
        headers: Optional[dict[str, str]] = None,
        session_index: int = 0,
    ) -> dict[str, Any]: ...


class Sound:
    """
    A TikTok sound (music track).

    Cached fields (``title``, ``duration``, ``original``) are only meaningful
    after a successful ``info()`` call.
    """

    def __init__(self, sound_id: str, dispatcher: Dispatcher):
        self.id = sound_id
        self.title: str = ""
        self.duration: int = 0
        self.original: bool = False
        self.as_dict: Optional[dict[str, Any]] = None

        self._dispatcher = dispatcher
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"Sound(id={self.id!r}, title={self.title!r})"

    async def info(self, options: Optional[RequestOptions] = None) -> dict[str, Any]:
        """
        Fetches the sound's metadata and refreshes the cached fields.

        Concurrent calls on the same instance run one after the other.

        Returns:
            The raw API response.

        Raises:
            SoundFetchError: If the request or its decoding failed.
            SessionIndexError: If ``options.session_index`` is not in the pool.
        """
        options = options or RequestOptions()
        params = {"musicId": self.id, **options.request_params()}

        async with self._lock:
            try:
                response = await self._dispatcher.make_request(
                    MUSIC_DETAIL_ENDPOINT,
                    params,
                    options.headers,
                    options.session_index,
                )
            except (TransportError, DecodeError) as e:
                raise SoundFetchError(
                    f"Could not fetch metadata for sound {self.id}: {e}"
                ) from e

            self.as_dict = response
            self._extract_from_data()
            return response

    async def videos(
        self,
        count: int = PAGE_SIZE,
        cursor: int = 0,
        options: Optional[RequestOptions] = None,
    ) -> AsyncGenerator[dict[str, Any], None]:
        """
        Yields up to ``count`` videos that use this sound.

        Pages are always requested with the server's maximum page size; the
        next page is only fetched once every item of the current one has been
        consumed. The stream ends quietly when the server runs out of pages,
        returns an unexpected payload, or a request fails.

        Args:
            count: Maximum number of videos to yield.
            cursor: Offset to start from.
            options: Session index, token and header overrides.
        """
        options = options or RequestOptions()
        emitted = 0

        while emitted < count:
            params = {
                "musicID": self.id,
                "count": str(PAGE_SIZE),
                "cursor": str(cursor),
                **options.request_params(),
            }

            try:
                response = await self._dispatcher.make_request(
                    MUSIC_ITEM_LIST_ENDPOINT,
                    params,
                    options.headers,
                    options.session_index,
                )
            except TTScrapeError as e:
                log.warning(
                    f"[yellow]Video listing for sound {self.id} stopped at "
                    f"cursor {cursor}: {e}[/yellow]"
                )
                return

            items = response.get("itemList")
            if not isinstance(items, list) or not items:
                log.debug(f"No more videos for sound {self.id} at cursor {cursor}.")
                return

            for item in items:
                if emitted >= count:
                    return
                if not isinstance(item, dict):
                    continue
                yield item
                emitted += 1

            if response.get("hasMore") is not True:
                return

            next_cursor = response.get("cursor")
            if isinstance(next_cursor, bool) or not isinstance(
                next_cursor, (int, float)
            ):
                log.debug(f"Missing next cursor for sound {self.id}, stopping.")
                return
            cursor = int(next_cursor)

    def _extract_from_data(self) -> None:
        """Copies the known fields of ``musicInfo`` into the instance."""
        if not self.as_dict:
            return

        music_info = self.as_dict.get("musicInfo")
        if not isinstance(music_info, dict):
            log.debug(f"Response for sound {self.id} has no 'musicInfo' object.")
            return

        title = music_info.get("title")
        if isinstance(title, str):
            self.title = title

        duration = music_info.get("duration")
        if isinstance(duration, (int, float)) and not isinstance(duration, bool):
            self.duration = int(duration)

        original = music_info.get("original")
        if isinstance(original, bool):
            self.original = original
