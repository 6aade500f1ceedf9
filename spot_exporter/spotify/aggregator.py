"""
Track aggregation: one playlist in, one row per track out.

The aggregator runs four waves of requests, each wave a set of parallel
requests staggered in time, each wave starting after the previous one
has completed:

    1. Tracks    - every page of the playlist (50 or 100 items per page),
                   page i delayed i * 100 ms. Artist and album ids are
                   collected into two deduplicated sets on the way.
    2. Genres    - /artists?ids= in chunks of at most 50, chunk i delayed
                   i * 100 ms.
    3. Labels    - /albums?ids= in chunks of at most 20, chunk i delayed
                   i * 120 ms.
    4. Features  - /audio-features?ids= once per track page (at most 100
                   ids), batch i delayed i * 100 ms. A failed batch is
                   blanked and never aborts the playlist.

Batch Optimization:
    Instead of two lookups per track, unique artist and album ids are
    batched up to the endpoint ceilings:
    - 100 tracks, 50 artists and 40 albums take 1 + 1 + 2 + 1 requests

Failures in waves 1-3 propagate to the caller; there is no partial CSV.
"""

import asyncio
from typing import Any

from spot_exporter.core.config import PacingConfig
from spot_exporter.core.exceptions import SpotExporterError
from spot_exporter.core.logger import get_logger
from spot_exporter.export.csv_format import render_csv
from spot_exporter.spotify.fetcher import API_BASE, RateLimitedFetcher
from spot_exporter.spotify.models import (
    AudioFeatures,
    ExportRow,
    Playlist,
    TrackBatch,
    TrackEntry,
)
from spot_exporter.spotify.schema import (
    Page,
    TrackItem,
    parse_album_labels,
    parse_artist_genres,
    parse_audio_features,
)
from spot_exporter.utils import chunked

logger = get_logger(__name__)


# Provider batch ceilings
ARTIST_CHUNK_SIZE = 50
ALBUM_CHUNK_SIZE = 20
FEATURE_BATCH_SIZE = 100

# Returned by the fetcher on 403 for audio features
FORBIDDEN_FEATURES = {"audio_features": []}


class TrackAggregator:
    """
    Builds the denormalized rows of one playlist.

    Attributes:
        fetcher: Fetcher used for every request.
        pacing: Stagger steps for each wave.
    """

    def __init__(self, fetcher: RateLimitedFetcher, pacing: PacingConfig | None = None) -> None:
        self.fetcher = fetcher
        self.pacing = pacing or PacingConfig()

    async def build_csv(self, playlist: Playlist) -> str:
        """Aggregate a playlist and render it as a CSV document."""
        return render_csv(await self.build_rows(playlist))

    async def build_rows(self, playlist: Playlist) -> list[ExportRow]:
        """
        Run all four waves for a playlist and join the results.

        Returns:
            One row per item Spotify returned, in playlist order.

        Raises:
            SpotifyError: If a track, artist or album request fails.
        """
        requests_before = self.fetcher.request_count

        batches, artist_ids, album_ids = await self._fetch_track_batches(playlist)
        logger.debug(
            f"{playlist.name}: {len(batches)} track pages, "
            f"{len(artist_ids)} artists, {len(album_ids)} albums"
        )

        genres = await self._fetch_artist_genres(artist_ids)
        labels = await self._fetch_album_labels(album_ids)
        batches = await self._attach_features(batches)

        rows = [
            self._build_row(entry, features, genres, labels)
            for batch in sorted(batches, key=lambda b: b.index)
            for entry, features in batch.pairs()
        ]

        if len(rows) != playlist.total_tracks:
            logger.warning(
                f"{playlist.name}: Spotify reported {playlist.total_tracks} tracks "
                f"but returned {len(rows)}"
            )

        logger.info(
            f"{playlist.name}: {len(rows)} tracks, {len(artist_ids)} artists, "
            f"{len(album_ids)} albums ({self.fetcher.request_count - requests_before} requests)"
        )
        return rows

    async def _fetch_track_batches(
        self, playlist: Playlist
    ) -> tuple[list[TrackBatch], list[str], list[str]]:
        """Wave 1. Returns the batches and the deduplicated artist and album ids."""
        page_size = playlist.page_size
        offsets = list(range(0, playlist.total_tracks, page_size))

        responses = await asyncio.gather(*(
            self.fetcher.fetch(
                f"{playlist.tracks_href}?offset={offset}&limit={page_size}",
                initial_delay_ms=index * self.pacing.track_page_step_ms,
            )
            for index, offset in enumerate(offsets)
        ))

        # dicts as insertion-ordered sets
        artist_ids: dict[str, None] = {}
        album_ids: dict[str, None] = {}
        batches: list[TrackBatch] = []

        for index, (offset, response) in enumerate(zip(offsets, responses)):
            entries = tuple(
                TrackEntry.from_item(TrackItem.from_json(item))
                for item in Page.from_json(response).items
            )
            for entry in entries:
                artist_ids.update(dict.fromkeys(entry.artist_ids))
                if entry.album_id:
                    album_ids[entry.album_id] = None
            batches.append(TrackBatch(index=index, offset=offset, entries=entries))

        return batches, list(artist_ids), list(album_ids)

    async def _fetch_artist_genres(self, artist_ids: list[str]) -> dict[str, list[str]]:
        """Wave 2."""
        responses = await asyncio.gather(*(
            self.fetcher.fetch(
                f"{API_BASE}/artists?ids={','.join(chunk)}",
                initial_delay_ms=index * self.pacing.artist_chunk_step_ms,
            )
            for index, chunk in enumerate(chunked(artist_ids, ARTIST_CHUNK_SIZE))
        ))

        genres: dict[str, list[str]] = {}
        for response in responses:
            genres.update(parse_artist_genres(response))
        return genres

    async def _fetch_album_labels(self, album_ids: list[str]) -> dict[str, str]:
        """Wave 3."""
        responses = await asyncio.gather(*(
            self.fetcher.fetch(
                f"{API_BASE}/albums?ids={','.join(chunk)}",
                initial_delay_ms=index * self.pacing.album_chunk_step_ms,
            )
            for index, chunk in enumerate(chunked(album_ids, ALBUM_CHUNK_SIZE))
        ))

        labels: dict[str, str] = {}
        for response in responses:
            labels.update(parse_album_labels(response))
        return labels

    async def _attach_features(self, batches: list[TrackBatch]) -> list[TrackBatch]:
        """Wave 4. Every returned batch carries one AudioFeatures per entry."""
        return list(await asyncio.gather(*(
            self._fetch_batch_features(batch) for batch in batches
        )))

    async def _fetch_batch_features(self, batch: TrackBatch) -> TrackBatch:
        track_ids = batch.track_ids()
        if not track_ids:
            logger.debug(f"Track page {batch.index} has no track ids, skipping audio features")
            return batch.with_blank_features()

        delay = batch.index * self.pacing.feature_batch_step_ms
        by_id: dict[str, AudioFeatures] = {}

        for chunk in chunked(track_ids, FEATURE_BATCH_SIZE):
            try:
                response = await self.fetcher.fetch(
                    f"{API_BASE}/audio-features?ids={','.join(chunk)}",
                    initial_delay_ms=delay,
                    forbidden_fallback=FORBIDDEN_FEATURES,
                )
            except SpotExporterError as e:
                logger.warning(f"Audio features unavailable for track page {batch.index}: {e}")
                return batch.with_blank_features()
            by_id.update(self._features_by_id(batch.index, chunk, response))

        return batch.with_features(tuple(
            by_id.get(entry.track_id, AudioFeatures.empty()) if entry.track_id else AudioFeatures.empty()
            for entry in batch.entries
        ))

    @staticmethod
    def _features_by_id(index: int, requested: list[str], response: Any) -> dict[str, AudioFeatures]:
        """
        Key a features response by track id.

        Spotify answers positionally, with null for tracks it has no
        features for. An object carrying its own id is keyed by that id.
        """
        features = parse_audio_features(response)
        if features is None:
            logger.warning(f"Malformed audio features response for track page {index}")
            return {}

        by_id: dict[str, AudioFeatures] = {}
        for requested_id, data in zip(requested, features):
            if data is None:
                continue
            own_id = data.get("id")
            by_id[own_id if isinstance(own_id, str) and own_id else requested_id] = \
                AudioFeatures.from_json(data)
        return by_id

    @staticmethod
    def _build_row(
        entry: TrackEntry,
        features: AudioFeatures,
        genres: dict[str, list[str]],
        labels: dict[str, str],
    ) -> ExportRow:
        # Genres of all credited artists, first-seen order, no duplicates
        merged: dict[str, None] = {}
        for artist_id in entry.artist_ids:
            for genre in genres.get(artist_id, []):
                if genre:
                    merged[genre] = None

        return ExportRow(
            uri=entry.uri,
            name=entry.name,
            album_name=entry.album_name,
            artist_names=entry.artist_names,
            release_date=entry.release_date,
            duration_ms=entry.duration_ms,
            popularity=entry.popularity,
            explicit=entry.explicit,
            added_by=entry.added_by,
            added_at=entry.added_at,
            genres=",".join(merged),
            record_label=labels.get(entry.album_id, "") if entry.album_id else "",
            features=features,
        )
