"""Test track aggregation across the four request waves"""

from urllib.parse import parse_qs, urlparse

import pytest

from conftest import FEATURES, FakeHttpSession, FakeResponse, FakeSpotify, make_playlist, track_item
from spot_exporter.core.exceptions import SpotifyError
from spot_exporter.spotify.aggregator import (
    ALBUM_CHUNK_SIZE,
    ARTIST_CHUNK_SIZE,
    FEATURE_BATCH_SIZE,
    TrackAggregator,
)
from spot_exporter.spotify.fetcher import RateLimitedFetcher
from spot_exporter.spotify.models import Playlist
from spot_exporter.spotify.schema import UserProfile


def build(session, sleep, api):
    http = FakeHttpSession(api)
    fetcher = RateLimitedFetcher(session, http_session=http, sleep=sleep)
    return TrackAggregator(fetcher), http


def requested_ids(http, path):
    """Id lists of every request to an enrichment endpoint."""
    ids = []
    for url in http.requests:
        parsed = urlparse(url)
        if parsed.path.endswith(path):
            ids.append(parse_qs(parsed.query)["ids"][0].split(","))
    return ids


class TestRowCount:
    """Row count equals the playlist's track count at page boundaries"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("total", [0, 100, 101])
    async def test_playlist_row_count(self, session, sleep, total):
        api = FakeSpotify(items=[track_item(i) for i in range(total)])
        aggregator, http = build(session, sleep, api)

        rows = await aggregator.build_rows(make_playlist(total))

        assert len(rows) == total
        assert [row.name for row in rows] == [f"Track {i}" for i in range(total)]
        track_pages = [url for url in http.requests if "/playlists/p1/tracks" in url]
        assert len(track_pages) == (total + 99) // 100

    @pytest.mark.asyncio
    @pytest.mark.parametrize("total", [50, 51])
    async def test_liked_songs_row_count(self, session, sleep, total):
        api = FakeSpotify(items=[track_item(i) for i in range(total)], liked_total=total)
        aggregator, http = build(session, sleep, api)
        liked = Playlist.liked_songs(UserProfile(id="owner", spotify_url=""), total)

        rows = await aggregator.build_rows(liked)

        assert len(rows) == total
        track_pages = [url for url in http.requests if "/me/tracks" in url]
        assert len(track_pages) == (total + 49) // 50
        assert all("limit=50" in url for url in track_pages)

    @pytest.mark.asyncio
    async def test_null_track_keeps_row(self, session, sleep):
        items = [track_item(0), {"added_at": "2023-01-01T00:00:00Z", "track": None}, track_item(2)]
        aggregator, _ = build(session, sleep, FakeSpotify(items=items))

        rows = await aggregator.build_rows(make_playlist(3))

        assert len(rows) == 3
        assert rows[1].uri is None
        assert rows[1].added_at == "2023-01-01T00:00:00Z"
        assert rows[1].features.is_empty


class TestEnrichment:
    """Genres, labels and their fallbacks"""

    @pytest.mark.asyncio
    async def test_genres_and_labels_joined(self, session, sleep):
        aggregator, _ = build(session, sleep, FakeSpotify(items=[track_item(3)]))

        row = (await aggregator.build_rows(make_playlist(1)))[0]

        assert row.genres == "genre-a3"
        assert row.record_label == "Label al3"
        assert row.artist_names == ("Artist a3",)

    @pytest.mark.asyncio
    async def test_missing_ids_give_empty_fields(self, session, sleep):
        local = {
            "added_at": "2023-01-01T00:00:00Z",
            "track": {
                "uri": "spotify:local:Someone:Demo:Demo+Track:180",
                "name": "Demo Track",
                "artists": [{"name": "Someone"}],
                "album": {"name": "Demo"},
            },
        }
        aggregator, http = build(session, sleep, FakeSpotify(items=[local]))

        row = (await aggregator.build_rows(make_playlist(1)))[0]

        assert row.genres == ""
        assert row.record_label == ""
        assert row.artist_names == ("Someone",)
        assert row.features.is_empty
        # Nothing to enrich, nothing requested
        assert requested_ids(http, "/artists") == []
        assert requested_ids(http, "/albums") == []
        assert requested_ids(http, "/audio-features") == []

    @pytest.mark.asyncio
    async def test_genres_merged_without_duplicates(self, session, sleep):
        item = track_item(0)
        item["track"]["artists"] = [{"id": "x", "name": "X"}, {"id": "y", "name": "Y"}]

        def api(url):
            if "/artists" in url:
                return FakeResponse(body={"artists": [
                    {"id": "x", "genres": ["rock", "indie"]},
                    {"id": "y", "genres": ["indie", "pop"]},
                ]})
            return FakeSpotify(items=[item])(url)

        aggregator, _ = build(session, sleep, api)
        row = (await aggregator.build_rows(make_playlist(1)))[0]

        assert row.genres == "rock,indie,pop"

    @pytest.mark.asyncio
    async def test_chunk_ceilings(self, session, sleep):
        total = 250
        items = [track_item(i, artist_count=120, album_count=45) for i in range(total)]
        aggregator, http = build(session, sleep, FakeSpotify(items=items))

        await aggregator.build_rows(make_playlist(total))

        artist_chunks = requested_ids(http, "/artists")
        album_chunks = requested_ids(http, "/albums")
        feature_chunks = requested_ids(http, "/audio-features")

        assert [len(c) for c in artist_chunks] == [50, 50, 20]
        assert [len(c) for c in album_chunks] == [20, 20, 5]
        assert [len(c) for c in feature_chunks] == [100, 100, 50]
        assert all(len(c) <= ARTIST_CHUNK_SIZE for c in artist_chunks)
        assert all(len(c) <= ALBUM_CHUNK_SIZE for c in album_chunks)
        assert all(len(c) <= FEATURE_BATCH_SIZE for c in feature_chunks)
        # Every id requested exactly once
        assert sum(len(c) for c in artist_chunks) == len({i for c in artist_chunks for i in c})

    @pytest.mark.asyncio
    async def test_waves_are_staggered(self, session, sleep):
        total = 250
        aggregator, _ = build(session, sleep, FakeSpotify(items=[track_item(i) for i in range(total)]))

        await aggregator.build_rows(make_playlist(total))

        # Track pages 1, 2 and feature batches 1, 2 at 100 ms steps,
        # second album chunk at 120 ms
        assert sorted(sleep.calls) == [0.1, 0.1, 0.12, 0.2, 0.2]

    @pytest.mark.asyncio
    async def test_track_page_failure_propagates(self, session, sleep):
        def api(url):
            if "offset=100" in url:
                return FakeResponse(status=500, body="boom")
            return FakeSpotify(items=[track_item(i) for i in range(150)])(url)

        aggregator, _ = build(session, sleep, api)

        with pytest.raises(SpotifyError) as exc_info:
            await aggregator.build_rows(make_playlist(150))

        assert exc_info.value.http_status == 500


class TestFeatureAlignment:
    """One track's missing features never shift its neighbours"""

    @pytest.mark.asyncio
    async def test_missing_features_for_middle_track(self, session, sleep):
        api = FakeSpotify(items=[track_item(i) for i in range(3)])
        api.missing_features = {"t1"}
        aggregator, _ = build(session, sleep, api)

        rows = await aggregator.build_rows(make_playlist(3))

        assert rows[0].features.danceability == FEATURES["danceability"]
        assert rows[0].features.tempo == FEATURES["tempo"]
        assert rows[1].features.is_empty
        assert rows[1].values()[12:] == (None,) * 12
        assert rows[2].features.time_signature == FEATURES["time_signature"]
        assert [row.name for row in rows] == ["Track 0", "Track 1", "Track 2"]

    @pytest.mark.asyncio
    async def test_failed_feature_batch_is_blanked(self, session, sleep):
        api = FakeSpotify(items=[track_item(i) for i in range(3)])
        api.feature_status = 500
        aggregator, _ = build(session, sleep, api)

        rows = await aggregator.build_rows(make_playlist(3))

        assert len(rows) == 3
        assert all(row.features.is_empty for row in rows)
        assert rows[0].genres == "genre-a0"

    @pytest.mark.asyncio
    async def test_forbidden_features_invalidate_session(self, session, sleep):
        api = FakeSpotify(items=[track_item(i) for i in range(3)])
        api.feature_status = 403
        aggregator, _ = build(session, sleep, api)

        rows = await aggregator.build_rows(make_playlist(3))

        assert len(rows) == 3
        assert all(row.features.is_empty for row in rows)
        assert session.access_token is None

    @pytest.mark.asyncio
    async def test_build_csv(self, session, sleep):
        aggregator, _ = build(session, sleep, FakeSpotify(items=[track_item(0)]))

        text = await aggregator.build_csv(make_playlist(1))

        lines = text.rstrip("\n").split("\n")
        assert len(lines) == 2
        assert lines[0].startswith("Track URI,Track Name")
        assert lines[1].startswith('spotify:track:t0,"Track 0"')
