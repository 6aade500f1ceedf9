"""Test configuration and fixtures"""

import json
import tempfile
import time
from pathlib import Path
from urllib.parse import parse_qs, urlparse

import pytest

from spot_exporter.core.session import SessionContext
from spot_exporter.spotify.models import AudioFeatures, ExportRow, Playlist

API = "https://api.spotify.com/v1"


class FakeResponse:
    """Stands in for aiohttp.ClientResponse inside `async with session.get(...)`."""

    def __init__(self, status=200, body=None, headers=None):
        self.status = status
        self.headers = headers or {}
        self._text = body if isinstance(body, str) else json.dumps(body if body is not None else {})

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeHttpSession:
    """
    Stands in for aiohttp.ClientSession.

    handler(url) returns a FakeResponse (or raises, to simulate transport
    errors). Every requested URL is recorded in order.
    """

    def __init__(self, handler):
        self.handler = handler
        self.requests = []
        self.closed = False

    def get(self, url, headers=None):
        self.requests.append(url)
        return self.handler(url)

    async def close(self):
        self.closed = True


def scripted(*responses):
    """Handler answering successive requests with the given responses."""
    queue = list(responses)

    def handler(url):
        return queue.pop(0)

    return handler


class RecordingSleep:
    """Async sleep replacement that records the requested delays."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


FEATURES = {
    "danceability": 0.5,
    "energy": 0.8,
    "key": 5,
    "loudness": -6.5,
    "mode": 1,
    "speechiness": 0.05,
    "acousticness": 0.1,
    "instrumentalness": 0.0,
    "liveness": 0.2,
    "valence": 0.6,
    "tempo": 120.0,
    "time_signature": 4,
}


def track_item(i, artist_count=7, album_count=30):
    """Playlist item for synthetic track i."""
    artist_id = f"a{i % artist_count}"
    album_id = f"al{i % album_count}"
    return {
        "added_at": "2023-05-01T10:00:00Z",
        "added_by": {"id": "owner"},
        "track": {
            "uri": f"spotify:track:t{i}",
            "name": f"Track {i}",
            "duration_ms": 200000 + i,
            "popularity": i % 101,
            "explicit": i % 2 == 0,
            "artists": [{"id": artist_id, "name": f"Artist {artist_id}"}],
            "album": {
                "id": album_id,
                "name": f"Album {album_id}",
                "release_date": "2020-01-01",
            },
        },
    }


class FakeSpotify:
    """
    Minimal Spotify Web API over a synthetic playlist.

    Attributes:
        items: Playlist items served by the tracks endpoint.
        playlists: Items served by /me/playlists.
        liked_total: Total reported by /me/tracks, which serves the same items.
        missing_features: Track ids answered with null audio features.
        feature_status: Status returned for every audio features request
                        (200 serves data).
    """

    def __init__(self, items=(), playlists=(), liked_total=0):
        self.items = list(items)
        self.playlists = list(playlists)
        self.liked_total = liked_total
        self.missing_features = set()
        self.feature_status = 200

    def __call__(self, url):
        parsed = urlparse(url)
        query = {k: v[0] for k, v in parse_qs(parsed.query).items()}
        path = parsed.path.replace("/v1", "", 1)

        if path == "/me":
            return FakeResponse(body={"id": "owner", "external_urls": {"spotify": "https://open.spotify.com/user/owner"}})

        if path == "/me/tracks":
            offset, limit = int(query["offset"]), int(query["limit"])
            return FakeResponse(body={
                "items": self.items[offset:offset + limit],
                "total": self.liked_total,
            })

        if path == "/me/playlists":
            offset, limit = int(query["offset"]), int(query["limit"])
            return FakeResponse(body={
                "items": self.playlists[offset:offset + limit],
                "total": len(self.playlists),
            })

        if path.endswith("/tracks"):
            offset, limit = int(query["offset"]), int(query["limit"])
            return FakeResponse(body={
                "items": self.items[offset:offset + limit],
                "total": len(self.items),
            })

        if path == "/artists":
            return FakeResponse(body={"artists": [
                {"id": i, "genres": [f"genre-{i}"]} for i in query["ids"].split(",")
            ]})

        if path == "/albums":
            return FakeResponse(body={"albums": [
                {"id": i, "label": f"Label {i}"} for i in query["ids"].split(",")
            ]})

        if path == "/audio-features":
            if self.feature_status != 200:
                return FakeResponse(status=self.feature_status, body="denied")
            return FakeResponse(body={"audio_features": [
                None if i in self.missing_features else dict(FEATURES, id=i)
                for i in query["ids"].split(",")
            ]})

        return FakeResponse(status=404, body="not found")


def make_playlist(total, name="Road Trip", playlist_id="p1"):
    return Playlist(
        id=playlist_id,
        name=name,
        owner_id="owner",
        owner_url="https://open.spotify.com/user/owner",
        tracks_href=f"{API}/playlists/{playlist_id}/tracks",
        total_tracks=total,
        spotify_url=f"https://open.spotify.com/playlist/{playlist_id}",
    )


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def session():
    """Fresh session context"""
    return SessionContext(access_token="test-token", issued_at=time.time())


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def sample_rows():
    """Three export rows, the middle one without audio features"""
    features = AudioFeatures(**FEATURES)
    return [
        ExportRow(
            uri="spotify:track:t1",
            name='Say "Hi", Bye',
            album_name="Greatest; Hits",
            artist_names=("Alpha", "Beta"),
            release_date="1999-04-01",
            duration_ms=180000,
            popularity=70,
            explicit=False,
            added_by="owner",
            added_at="2021-01-02T00:00:00Z",
            genres="rock,pop",
            record_label="Big Label",
            features=features,
        ),
        ExportRow(
            uri="spotify:track:t2",
            name="Second",
            album_name="Other",
            artist_names=("Alpha",),
            release_date="2005",
            duration_ms=240000,
            popularity=30,
            explicit=True,
            added_by="owner",
            added_at="2022-03-04T00:00:00Z",
            genres="rock",
            record_label="",
        ),
        ExportRow(
            uri="spotify:track:t3",
            name="Third",
            album_name="Greatest; Hits",
            artist_names=("Gamma",),
            release_date="1999-10-10",
            duration_ms=200000,
            popularity=90,
            explicit=False,
            added_by=None,
            added_at="2022-05-06T00:00:00Z",
            genres="",
            record_label="Big Label",
            features=AudioFeatures(**dict(FEATURES, tempo=165.0, valence=0.1)),
        ),
    ]
