"""
Data models for the export pipeline.

This module defines the immutable dataclasses that flow from the
Spotify fetch waves to the CSV/HTML output:

    Playlist     - one entry of the user's playlist list (or Liked Songs)
    TrackEntry   - one item of a tracks page, before enrichment
    AudioFeatures- the twelve audio-feature values of one track
    TrackBatch   - one tracks page together with its audio features
    ExportRow    - one fully joined output row

Design Decisions:
    - All dataclasses are frozen (immutable); a batch gains its features
      through with_features(), which returns a new batch
    - Features are paired with entries inside the batch they belong to,
      never matched up by position across separate lists
    - Models are built from the typed views in spotify.schema, so every
      missing-field rule lives in one place

Usage:
    from spot_exporter.spotify.models import Playlist, TrackEntry

    playlist = Playlist.from_spotify_api(item)
    entry = TrackEntry.from_item(TrackItem.from_json(raw_item))
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

from spot_exporter.spotify.schema import (
    FEATURE_FIELDS,
    PlaylistObject,
    TrackItem,
    UserProfile,
    feature_values,
)


LIKED_SONGS_NAME = "Liked Songs"
LIKED_SONGS_COVER = "liked_songs.jpeg"
LIKED_SONGS_URL = "https://open.spotify.com/collection/tracks"
LIKED_SONGS_HREF = "https://api.spotify.com/v1/me/tracks"

# Maximum page size per tracks endpoint
LIKED_SONGS_PAGE_SIZE = 50
PLAYLIST_PAGE_SIZE = 100

TRACK_URI_PREFIX = "spotify:track:"

# Output columns, in order
EXPORT_COLUMNS = (
    "Track URI",
    "Track Name",
    "Album Name",
    "Artist Name(s)",
    "Release Date",
    "Duration (ms)",
    "Popularity",
    "Explicit",
    "Added By",
    "Added At",
    "Genres",
    "Record Label",
    "Danceability",
    "Energy",
    "Key",
    "Loudness",
    "Mode",
    "Speechiness",
    "Acousticness",
    "Instrumentalness",
    "Liveness",
    "Valence",
    "Tempo",
    "Time Signature",
)

FEATURE_COLUMNS = EXPORT_COLUMNS[12:]


@dataclass(frozen=True)
class Playlist:
    """
    Immutable representation of one exportable playlist.

    Attributes:
        id: Spotify playlist ID, None for the synthetic Liked Songs entry.
        name: Display name.
        owner_id: Spotify user id of the owner.
        owner_url: Spotify profile URL of the owner.
        tracks_href: API URL of the playlist's tracks collection.
                     Pages are requested as {tracks_href}?offset=N&limit=M.
        total_tracks: Number of tracks Spotify reports for the playlist.
        cover_url: URL of the first cover image, or None.
        spotify_url: Web URL of the playlist.
        is_liked_songs: True for the synthetic Liked Songs entry.
    """
    id: str | None
    name: str
    owner_id: str
    owner_url: str
    tracks_href: str
    total_tracks: int
    cover_url: str | None = None
    spotify_url: str = ""
    is_liked_songs: bool = False

    @property
    def page_size(self) -> int:
        """Liked Songs pages hold at most 50 items, playlist pages 100."""
        return LIKED_SONGS_PAGE_SIZE if self.is_liked_songs else PLAYLIST_PAGE_SIZE

    @classmethod
    def from_spotify_api(cls, data: Any) -> "Playlist":
        """
        Create a Playlist from one item of GET /me/playlists.

        Args:
            data: Raw playlist object. Missing fields follow the fallback
                  rules in spotify.schema.
        """
        parsed = PlaylistObject.from_json(data)
        return cls(
            id=parsed.id,
            name=parsed.name,
            owner_id=parsed.owner_id,
            owner_url=parsed.owner_url,
            tracks_href=parsed.tracks_href,
            total_tracks=parsed.total_tracks,
            cover_url=parsed.cover_url,
            spotify_url=parsed.spotify_url,
        )

    @classmethod
    def liked_songs(cls, profile: UserProfile, total: int) -> "Playlist":
        """
        Build the synthetic Liked Songs entry.

        Liked Songs is not a real playlist on the API side. It is
        assembled from the user profile (owner) and the total reported by
        a one-item probe of /me/tracks.
        """
        return cls(
            id=None,
            name=LIKED_SONGS_NAME,
            owner_id=profile.id,
            owner_url=profile.spotify_url,
            tracks_href=LIKED_SONGS_HREF,
            total_tracks=total,
            cover_url=LIKED_SONGS_COVER,
            spotify_url=LIKED_SONGS_URL,
            is_liked_songs=True,
        )


@dataclass(frozen=True)
class TrackEntry:
    """
    One item of a tracks page, before genre/label/feature enrichment.

    A null track (removed from Spotify, unavailable in the market) still
    produces an entry with blank fields, so the number of output rows
    always equals the number of items Spotify returned.

    Attributes:
        uri: Track URI, e.g. "spotify:track:4cOdK2wGLETKBW3PvgPWqT".
             Local files have "spotify:local:..." URIs.
        artist_ids: Ids of the artists that have one, in credit order.
        album_id: Album id, None if missing.
        name: Track title.
        album_name: Album title.
        artist_names: Artist names in credit order.
        release_date: Album release date as Spotify reports it
                      ("2021", "2021-03" or "2021-03-14").
        duration_ms: Track length in milliseconds.
        popularity: 0-100 popularity score.
        explicit: Explicit flag, None if unknown.
        added_by: User id of whoever added the track, None for Liked Songs.
        added_at: ISO timestamp of when the track was added.
    """
    uri: str | None = None
    artist_ids: tuple[str, ...] = ()
    album_id: str | None = None
    name: str | None = None
    album_name: str | None = None
    artist_names: tuple[str, ...] = ()
    release_date: str | None = None
    duration_ms: int | None = None
    popularity: int | None = None
    explicit: bool | None = None
    added_by: str | None = None
    added_at: str | None = None

    @property
    def track_id(self) -> str | None:
        """The id part of a spotify:track: URI, else None."""
        if not self.uri or not self.uri.startswith(TRACK_URI_PREFIX):
            return None
        return self.uri[len(TRACK_URI_PREFIX):] or None

    @classmethod
    def from_item(cls, item: TrackItem) -> "TrackEntry":
        track = item.track
        if track is None:
            return cls(added_by=item.added_by, added_at=item.added_at)

        return cls(
            uri=track.uri,
            artist_ids=tuple(a.id for a in track.artists if a.id),
            album_id=track.album_id,
            name=track.name,
            album_name=track.album_name,
            artist_names=tuple(a.name for a in track.artists if a.name is not None),
            release_date=track.release_date,
            duration_ms=track.duration_ms,
            popularity=track.popularity,
            explicit=track.explicit,
            added_by=item.added_by,
            added_at=item.added_at,
        )


@dataclass(frozen=True)
class AudioFeatures:
    """
    Audio features of one track, all optional.

    Field order matches the feature columns of the CSV export.
    """
    danceability: float | None = None
    energy: float | None = None
    key: int | None = None
    loudness: float | None = None
    mode: int | None = None
    speechiness: float | None = None
    acousticness: float | None = None
    instrumentalness: float | None = None
    liveness: float | None = None
    valence: float | None = None
    tempo: float | None = None
    time_signature: int | None = None

    @classmethod
    def empty(cls) -> "AudioFeatures":
        return cls()

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> "AudioFeatures":
        return cls(*feature_values(data))

    def as_tuple(self) -> tuple[float | int | None, ...]:
        return tuple(getattr(self, name) for name in FEATURE_FIELDS)

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in self.as_tuple())


@dataclass(frozen=True)
class TrackBatch:
    """
    One tracks page and, once fetched, the audio features of its entries.

    The batch is the unit of alignment between track data and feature
    data: features are stored next to the entries they describe, so a
    failed feature lookup for one batch (or one track) can only blank
    that batch (or that track).

    Attributes:
        index: Page index within the playlist (0-based).
        offset: Offset the page was requested with.
        entries: Track entries in page order.
        features: Same length as entries once attached, else None.
    """
    index: int
    offset: int
    entries: tuple[TrackEntry, ...]
    features: tuple[AudioFeatures, ...] | None = None

    def track_ids(self) -> list[str]:
        """Ids of entries with a spotify:track: URI, in page order, without duplicates."""
        ids: list[str] = []
        for entry in self.entries:
            track_id = entry.track_id
            if track_id and track_id not in ids:
                ids.append(track_id)
        return ids

    def with_features(self, features: tuple[AudioFeatures, ...]) -> "TrackBatch":
        if len(features) != len(self.entries):
            raise ValueError(
                f"Batch {self.index} has {len(self.entries)} entries "
                f"but {len(features)} feature rows"
            )
        return TrackBatch(self.index, self.offset, self.entries, tuple(features))

    def with_blank_features(self) -> "TrackBatch":
        return self.with_features(tuple(AudioFeatures.empty() for _ in self.entries))

    def pairs(self) -> Iterator[tuple[TrackEntry, AudioFeatures]]:
        features = self.features or tuple(AudioFeatures.empty() for _ in self.entries)
        return zip(self.entries, features)


@dataclass(frozen=True)
class ExportRow:
    """
    One fully joined output row, in EXPORT_COLUMNS order.

    Rows are produced either by the aggregator (from live API data) or
    by from_record() (from a previously exported CSV), and both feed the
    same statistics and report code.
    """
    uri: str | None = None
    name: str | None = None
    album_name: str | None = None
    artist_names: tuple[str, ...] = ()
    release_date: str | None = None
    duration_ms: int | None = None
    popularity: int | None = None
    explicit: bool | None = None
    added_by: str | None = None
    added_at: str | None = None
    genres: str = ""
    record_label: str = ""
    features: AudioFeatures = field(default_factory=AudioFeatures)

    @property
    def genre_list(self) -> list[str]:
        return [g.strip() for g in self.genres.split(",") if g.strip()]

    @property
    def release_year(self) -> str | None:
        if self.release_date and len(self.release_date) >= 4 and self.release_date[:4].isdigit():
            return self.release_date[:4]
        return None

    @property
    def added_year(self) -> str | None:
        if self.added_at and len(self.added_at) >= 4 and self.added_at[:4].isdigit():
            return self.added_at[:4]
        return None

    def values(self) -> tuple[Any, ...]:
        """Cell values in EXPORT_COLUMNS order, before CSV formatting."""
        return (
            self.uri,
            self.name,
            self.album_name,
            self.artist_names,
            self.release_date,
            self.duration_ms,
            self.popularity,
            self.explicit,
            self.added_by,
            self.added_at,
            self.genres,
            self.record_label,
        ) + self.features.as_tuple()

    @classmethod
    def from_record(cls, record: Mapping[str, str]) -> "ExportRow":
        """
        Rebuild a row from one parsed CSV record.

        Args:
            record: Cell text keyed by lower-cased column name. Columns
                    that are missing simply leave the field empty, so
                    exports from older versions without audio features
                    still load.
        """
        def text(column: str) -> str | None:
            value = record.get(column.lower(), "")
            return value if value != "" else None

        artists = text("Artist Name(s)")
        return cls(
            uri=text("Track URI"),
            name=text("Track Name"),
            album_name=text("Album Name"),
            artist_names=tuple(a for a in artists.split(";") if a) if artists else (),
            release_date=text("Release Date"),
            duration_ms=_parse_int(text("Duration (ms)")),
            popularity=_parse_int(text("Popularity")),
            explicit=_parse_bool(text("Explicit")),
            added_by=text("Added By"),
            added_at=text("Added At"),
            genres=text("Genres") or "",
            record_label=text("Record Label") or "",
            features=AudioFeatures(*(_parse_number(text(c)) for c in FEATURE_COLUMNS)),
        )


def _parse_number(value: str | None) -> float | int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return None


def _parse_int(value: str | None) -> int | None:
    number = _parse_number(value)
    return int(number) if number is not None else None


def _parse_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return None
