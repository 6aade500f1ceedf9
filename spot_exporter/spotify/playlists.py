"""
Enumeration of the user's playlists.

The list always starts with a synthetic Liked Songs entry, followed by
the user's playlists in the order Spotify returns them.

Workflow:
    1. GET /me and a one-item probe of /me/tracks -> Liked Songs entry
    2. GET /me/playlists?limit=50&offset=0 -> first page and total
    3. Remaining pages requested concurrently, page at offset N delayed
       by 2*N - 100 ms (offset 50 -> 0 ms, 100 -> 100 ms, ...)
    4. Pages concatenated in offset order; null items skipped

A failing page fails the whole enumeration.
"""

import asyncio

from spot_exporter.core.config import PacingConfig
from spot_exporter.core.exceptions import PlaylistNotFoundError
from spot_exporter.core.logger import get_logger
from spot_exporter.spotify.fetcher import API_BASE, RateLimitedFetcher
from spot_exporter.spotify.models import Playlist
from spot_exporter.spotify.schema import Page, UserProfile

logger = get_logger(__name__)


PLAYLIST_LIST_PAGE_SIZE = 50


class PlaylistEnumerator:
    """Lists everything the user can export."""

    def __init__(self, fetcher: RateLimitedFetcher, pacing: PacingConfig | None = None) -> None:
        self.fetcher = fetcher
        self.pacing = pacing or PacingConfig()

    async def list_playlists(self) -> list[Playlist]:
        """
        Fetch Liked Songs plus every playlist of the current user.

        Returns:
            Liked Songs first, then playlists in provider order.

        Raises:
            SpotifyError: If any request fails after retries.
        """
        profile = UserProfile.from_json(await self.fetcher.fetch(f"{API_BASE}/me"))
        library = Page.from_json(
            await self.fetcher.fetch(f"{API_BASE}/me/tracks?offset=0&limit=1")
        )
        playlists = [Playlist.liked_songs(profile, library.total)]

        first_page = Page.from_json(await self.fetcher.fetch(self._page_url(0)))
        pages = [first_page]

        offsets = range(PLAYLIST_LIST_PAGE_SIZE, first_page.total, PLAYLIST_LIST_PAGE_SIZE)
        if offsets:
            logger.debug(f"Fetching {len(offsets)} more playlist pages ({first_page.total} playlists)")
            responses = await asyncio.gather(*(
                self.fetcher.fetch(self._page_url(offset), initial_delay_ms=self._page_delay(offset))
                for offset in offsets
            ))
            pages.extend(Page.from_json(response) for response in responses)

        for page in pages:
            for item in page.items:
                if not isinstance(item, dict):
                    logger.warning("Skipping empty playlist entry returned by Spotify")
                    continue
                playlists.append(Playlist.from_spotify_api(item))

        logger.info(f"Found {len(playlists) - 1} playlists plus Liked Songs ({library.total} tracks)")
        return playlists

    def _page_delay(self, offset: int) -> int:
        return max(0, self.pacing.playlist_page_step_ms * offset - 100)

    @staticmethod
    def _page_url(offset: int) -> str:
        return f"{API_BASE}/me/playlists?limit={PLAYLIST_LIST_PAGE_SIZE}&offset={offset}"


def find_playlist(playlists: list[Playlist], query: str) -> Playlist:
    """
    Find a playlist by id, exact name, or case-insensitive name.

    "liked" and "Liked Songs" both select the synthetic Liked Songs entry.

    Raises:
        PlaylistNotFoundError: If nothing matches.
    """
    wanted = query.strip()

    for playlist in playlists:
        if playlist.id is not None and playlist.id == wanted:
            return playlist

    for playlist in playlists:
        if playlist.name == wanted:
            return playlist

    lowered = wanted.lower()
    for playlist in playlists:
        if playlist.name.lower() == lowered or (playlist.is_liked_songs and lowered == "liked"):
            return playlist

    raise PlaylistNotFoundError(
        f"No playlist matches '{query}'",
        details={"query": query, "available": len(playlists)},
    )
