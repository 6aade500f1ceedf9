"""
Typed views over Spotify Web API responses.

Spotify omits or nulls fields freely: local files have no ids, removed
tracks come back as null, unknown artists have no genres. Rather than
guarding every access where the data is used, each resource is parsed
once into a frozen dataclass whose fields are all optional, and every
absence is resolved by one rule, applied here and nowhere else:

    Resource            Field                       Fallback
    any page            items                       empty list
    any page            total                       0
    profile             id, external_urls.spotify   ""
    playlist            images[0].url               None
    playlist item       track                       None (blank entry)
    playlist item       added_by.id                 None
    track               artists[*].id, album.id     skipped (no enrichment)
    artists response    artists                     empty list, nulls skipped
    artist              genres                      empty list
    albums response     albums                      empty list, nulls skipped
    album               label                       ""
    features response   audio_features              None (whole batch blank)
    feature object      any field                   None

Anything that is not a dict where a dict is expected counts as absent.
"""

from dataclasses import dataclass
from typing import Any


FEATURE_FIELDS = (
    "danceability",
    "energy",
    "key",
    "loudness",
    "mode",
    "speechiness",
    "acousticness",
    "instrumentalness",
    "liveness",
    "valence",
    "tempo",
    "time_signature",
)


def _obj(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _number(value: Any) -> float | int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


@dataclass(frozen=True)
class Page:
    """A paging object: /me/playlists, /me/tracks, playlist tracks."""
    items: tuple[Any, ...]
    total: int

    @classmethod
    def from_json(cls, data: Any) -> "Page":
        data = _obj(data)
        return cls(
            items=tuple(_list(data.get("items"))),
            total=_int(data.get("total")) or 0,
        )


@dataclass(frozen=True)
class UserProfile:
    """GET /me."""
    id: str
    spotify_url: str

    @classmethod
    def from_json(cls, data: Any) -> "UserProfile":
        data = _obj(data)
        return cls(
            id=_str(data.get("id")) or "",
            spotify_url=_str(_obj(data.get("external_urls")).get("spotify")) or "",
        )


@dataclass(frozen=True)
class PlaylistObject:
    """One item of /me/playlists."""
    id: str | None
    name: str
    owner_id: str
    owner_url: str
    tracks_href: str
    total_tracks: int
    cover_url: str | None
    spotify_url: str

    @classmethod
    def from_json(cls, data: Any) -> "PlaylistObject":
        data = _obj(data)
        owner = UserProfile.from_json(data.get("owner"))
        tracks = _obj(data.get("tracks"))
        images = _list(data.get("images"))
        cover = _str(_obj(images[0]).get("url")) if images else None
        return cls(
            id=_str(data.get("id")),
            name=_str(data.get("name")) or "",
            owner_id=owner.id,
            owner_url=owner.spotify_url,
            tracks_href=_str(tracks.get("href")) or "",
            total_tracks=_int(tracks.get("total")) or 0,
            cover_url=cover,
            spotify_url=_str(_obj(data.get("external_urls")).get("spotify")) or "",
        )


@dataclass(frozen=True)
class ArtistRef:
    id: str | None
    name: str | None


@dataclass(frozen=True)
class TrackObject:
    """The 'track' field of a playlist item."""
    uri: str | None
    name: str | None
    album_id: str | None
    album_name: str | None
    release_date: str | None
    artists: tuple[ArtistRef, ...]
    duration_ms: int | None
    popularity: int | None
    explicit: bool | None

    @classmethod
    def from_json(cls, data: Any) -> "TrackObject | None":
        if not isinstance(data, dict):
            return None
        album = _obj(data.get("album"))
        artists = tuple(
            ArtistRef(id=_str(_obj(a).get("id")) or None, name=_str(_obj(a).get("name")))
            for a in _list(data.get("artists"))
            if isinstance(a, dict)
        )
        explicit = data.get("explicit")
        return cls(
            uri=_str(data.get("uri")),
            name=_str(data.get("name")),
            album_id=_str(album.get("id")) or None,
            album_name=_str(album.get("name")),
            release_date=_str(album.get("release_date")),
            artists=artists,
            duration_ms=_int(data.get("duration_ms")),
            popularity=_int(data.get("popularity")),
            explicit=explicit if isinstance(explicit, bool) else None,
        )


@dataclass(frozen=True)
class TrackItem:
    """One item of a tracks page: the track plus who added it and when."""
    track: TrackObject | None
    added_by: str | None
    added_at: str | None

    @classmethod
    def from_json(cls, data: Any) -> "TrackItem":
        data = _obj(data)
        return cls(
            track=TrackObject.from_json(data.get("track")),
            added_by=_str(_obj(data.get("added_by")).get("id")),
            added_at=_str(data.get("added_at")),
        )


def parse_artist_genres(data: Any) -> dict[str, list[str]]:
    """GET /artists?ids= -> artist id to genre list. Null artists are skipped."""
    genres: dict[str, list[str]] = {}
    for artist in _list(_obj(data).get("artists")):
        if not isinstance(artist, dict):
            continue
        artist_id = _str(artist.get("id"))
        if artist_id:
            genres[artist_id] = [g for g in _list(artist.get("genres")) if isinstance(g, str)]
    return genres


def parse_album_labels(data: Any) -> dict[str, str]:
    """GET /albums?ids= -> album id to record label. Null albums are skipped."""
    labels: dict[str, str] = {}
    for album in _list(_obj(data).get("albums")):
        if not isinstance(album, dict):
            continue
        album_id = _str(album.get("id"))
        if album_id:
            labels[album_id] = _str(album.get("label")) or ""
    return labels


def parse_audio_features(data: Any) -> list[dict[str, Any] | None] | None:
    """
    GET /audio-features?ids= -> list aligned with the requested ids.

    Returns None when the response has no audio_features list at all,
    which the caller treats as a blank batch.
    """
    features = _obj(data).get("audio_features")
    if not isinstance(features, list):
        return None
    return [f if isinstance(f, dict) else None for f in features]


def feature_values(data: dict[str, Any] | None) -> tuple[float | int | None, ...]:
    """The twelve feature values of one feature object, in CSV column order."""
    data = _obj(data)
    return tuple(_number(data.get(name)) for name in FEATURE_FIELDS)
