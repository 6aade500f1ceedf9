"""
Summary statistics over export rows.

The same rows come either straight from the aggregator or from a
previously exported CSV, so a summary computed before writing a CSV
equals the summary computed after reading it back.

Simple statistics are always computed. Audio feature statistics
(averages, tempo ranges, key/mode distribution, feature leaders) are
only filled in when at least one row carries audio features.
"""

from collections import Counter
from dataclasses import dataclass, field, replace
from statistics import mean
from typing import Iterable

from spot_exporter.spotify.models import ExportRow


TOP_N = 10
LEADERS_N = 5

KEY_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")
MODE_NAMES = ("Minor", "Major")

# (label, lower bound inclusive, upper bound exclusive or None)
TEMPO_RANGES = (
    ("60-80", 60, 80),
    ("80-100", 80, 100),
    ("100-120", 100, 120),
    ("120-140", 120, 140),
    ("140-160", 140, 160),
    ("160+", 160, None),
)

POPULARITY_BUCKETS = (
    ("0-20", 20),
    ("21-40", 40),
    ("41-60", 60),
    ("61-80", 80),
    ("81-100", 100),
)

AVERAGED_FEATURES = (
    "danceability",
    "energy",
    "valence",
    "acousticness",
    "instrumentalness",
    "speechiness",
    "liveness",
    "tempo",
)


@dataclass(frozen=True)
class PlaylistSummary:
    """
    Everything the report shows above the track table.

    Rankings are (name, count) pairs, most frequent first, ties in order
    of first appearance. Year distributions are ordered by year.
    """
    track_count: int
    unique_artists: int
    average_popularity: float | None
    total_duration_ms: int
    explicit_count: int
    top_artists: list[tuple[str, int]]
    top_albums: list[tuple[str, int]]
    top_genres: list[tuple[str, int]]
    top_labels: list[tuple[str, int]]
    release_years: dict[str, int]
    added_years: dict[str, int]
    popularity_by_year: dict[str, float]
    popularity_buckets: dict[str, int]
    has_features: bool = False
    feature_averages: dict[str, float] = field(default_factory=dict)
    tempo_ranges: dict[str, int] = field(default_factory=dict)
    key_distribution: dict[str, int] = field(default_factory=dict)
    mode_distribution: dict[str, int] = field(default_factory=dict)
    feature_leaders: dict[str, list[tuple[str, float]]] = field(default_factory=dict)

    @property
    def total_duration_minutes(self) -> int:
        return self.total_duration_ms // 60000


def _top(counter: Counter, n: int = TOP_N) -> list[tuple[str, int]]:
    return counter.most_common(n)


def _by_year(counter: Counter) -> dict[str, int]:
    return {year: counter[year] for year in sorted(counter)}


def _popularity_bucket(popularity: int) -> str:
    for label, upper in POPULARITY_BUCKETS:
        if popularity <= upper:
            return label
    return POPULARITY_BUCKETS[-1][0]


def summarize(rows: Iterable[ExportRow]) -> PlaylistSummary:
    """
    Compute the summary of a list of rows.

    Averages only consider rows that carry the value; an average over
    no values is None (popularity) or left out (features).
    """
    rows = list(rows)

    artists: Counter = Counter()
    albums: Counter = Counter()
    genres: Counter = Counter()
    labels: Counter = Counter()
    release_years: Counter = Counter()
    added_years: Counter = Counter()
    year_popularity: dict[str, list[int]] = {}
    popularity_buckets = {label: 0 for label, _ in POPULARITY_BUCKETS}

    for row in rows:
        artists.update(name for name in dict.fromkeys(row.artist_names) if name)
        if row.album_name:
            albums[row.album_name] += 1
        genres.update(row.genre_list)
        if row.record_label:
            labels[row.record_label] += 1

        year = row.release_year
        if year:
            release_years[year] += 1
            if row.popularity is not None:
                year_popularity.setdefault(year, []).append(row.popularity)
        if row.added_year:
            added_years[row.added_year] += 1

        if row.popularity is not None:
            popularity_buckets[_popularity_bucket(row.popularity)] += 1

    popularities = [row.popularity for row in rows if row.popularity is not None]

    summary = PlaylistSummary(
        track_count=len(rows),
        unique_artists=len(artists),
        average_popularity=mean(popularities) if popularities else None,
        total_duration_ms=sum(row.duration_ms or 0 for row in rows),
        explicit_count=sum(1 for row in rows if row.explicit),
        top_artists=_top(artists),
        top_albums=_top(albums),
        top_genres=_top(genres),
        top_labels=_top(labels),
        release_years=_by_year(release_years),
        added_years=_by_year(added_years),
        popularity_by_year={
            year: mean(year_popularity[year]) for year in sorted(year_popularity)
        },
        popularity_buckets=popularity_buckets,
    )

    with_features = [row for row in rows if not row.features.is_empty]
    if not with_features:
        return summary

    return _with_feature_stats(summary, with_features)


def _with_feature_stats(summary: PlaylistSummary, rows: list[ExportRow]) -> PlaylistSummary:
    averages = {}
    for name in AVERAGED_FEATURES:
        values = [getattr(row.features, name) for row in rows]
        values = [v for v in values if v is not None]
        if values:
            averages[name] = mean(values)

    tempo_ranges = {label: 0 for label, _, _ in TEMPO_RANGES}
    keys = {name: 0 for name in KEY_NAMES}
    modes = {name: 0 for name in MODE_NAMES}

    for row in rows:
        tempo = row.features.tempo
        if tempo is not None:
            for label, low, high in TEMPO_RANGES:
                if tempo >= low and (high is None or tempo < high):
                    tempo_ranges[label] += 1
                    break

        key = row.features.key
        if key is not None and 0 <= int(key) < len(KEY_NAMES):
            keys[KEY_NAMES[int(key)]] += 1

        mode = row.features.mode
        if mode is not None and int(mode) in (0, 1):
            modes[MODE_NAMES[int(mode)]] += 1

    return replace(
        summary,
        has_features=True,
        feature_averages=averages,
        tempo_ranges=tempo_ranges,
        key_distribution=keys,
        mode_distribution=modes,
        feature_leaders=_feature_leaders(rows),
    )


def _feature_leaders(rows: list[ExportRow]) -> dict[str, list[tuple[str, float]]]:
    """Top five tracks per headline feature, plus the five least positive."""
    def ranked(name: str, reverse: bool = True) -> list[tuple[str, float]]:
        scored = [
            (_track_label(row), getattr(row.features, name))
            for row in rows
            if getattr(row.features, name) is not None
        ]
        scored.sort(key=lambda item: item[1], reverse=reverse)
        return scored[:LEADERS_N]

    return {
        "Most danceable": ranked("danceability"),
        "Most energetic": ranked("energy"),
        "Loudest": ranked("loudness"),
        "Most acoustic": ranked("acousticness"),
        "Happiest": ranked("valence"),
        "Saddest": ranked("valence", reverse=False),
    }


def _track_label(row: ExportRow) -> str:
    artists = ", ".join(row.artist_names)
    name = row.name or "Unknown"
    return f"{name} - {artists}" if artists else name
