"""
Spotify module for spot-exporter.

This module handles all interaction with the Spotify Web API:
    - fetcher: authorized GET with 429/502 retry and request pacing
    - schema: typed views over API responses with fallback rules
    - models: Playlist, TrackEntry, TrackBatch, AudioFeatures, ExportRow
    - playlists: enumeration of the user's playlists and Liked Songs
    - aggregator: the four request waves and the row join
    - auth: PKCE login producing a SessionContext

Usage:
    from spot_exporter.spotify import (
        RateLimitedFetcher, PlaylistEnumerator, TrackAggregator
    )

    async with RateLimitedFetcher(session, config.fetch) as fetcher:
        playlists = await PlaylistEnumerator(fetcher).list_playlists()
        rows = await TrackAggregator(fetcher).build_rows(playlists[0])
"""

from spot_exporter.spotify.models import (
    EXPORT_COLUMNS,
    AudioFeatures,
    ExportRow,
    Playlist,
    TrackBatch,
    TrackEntry,
)
from spot_exporter.spotify.fetcher import API_BASE, RateLimitedFetcher
from spot_exporter.spotify.playlists import PlaylistEnumerator, find_playlist
from spot_exporter.spotify.aggregator import TrackAggregator
from spot_exporter.spotify.auth import login

__all__ = [
    # Models
    "EXPORT_COLUMNS",
    "AudioFeatures",
    "ExportRow",
    "Playlist",
    "TrackBatch",
    "TrackEntry",
    # Fetching
    "API_BASE",
    "RateLimitedFetcher",
    "PlaylistEnumerator",
    "find_playlist",
    "TrackAggregator",
    # Auth
    "login",
]
