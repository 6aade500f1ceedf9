"""
spot-exporter: Export Spotify playlists to CSV and HTML analysis reports.

This package signs in to Spotify with PKCE, lists the user's playlists
(Liked Songs first), and turns each playlist into one denormalized row
per track: track metadata, artist genres, album record label and the
twelve audio features.

Architecture:
    Each playlist is built in four waves of concurrent requests, all
    going through one rate-limited fetcher:

    WAVE 1: Track pages (50 per page for Liked Songs, 100 otherwise)
    WAVE 2: Artist genres, 50 artist ids per request
    WAVE 3: Album record labels, 20 album ids per request
    WAVE 4: Audio features, one request per track page

    The fetcher waits out 429 responses for the Retry-After duration,
    retries 502 responses with a linear backoff, and staggers every
    request of a wave so the burst stays under the rate limit.

Modules:
    core/       - Configuration, session, logging, progress, exceptions
    spotify/    - Fetcher, response schema, models, enumeration, aggregation
    export/     - CSV format, zip packaging, statistics, HTML report
    utils/      - Small helpers (chunking, file names)
    cli.py      - Command-line interface

Usage:
    Command Line:
        spot-export --login
        spot-export --list
        spot-export --export "Road Trip"
        spot-export --all
        spot-export --analyze "Liked Songs"
        spot-export --from-csv Road_Trip.csv --simple

    Python API:
        from spot_exporter.core import load_config, SessionStore
        from spot_exporter.spotify import (
            RateLimitedFetcher, PlaylistEnumerator, TrackAggregator
        )
        from spot_exporter.export import export_playlist

        config = load_config()
        session = SessionStore(config.output.directory / "session.json").load()

        async with RateLimitedFetcher(session, config.fetch) as fetcher:
            playlists = await PlaylistEnumerator(fetcher, config.pacing).list_playlists()
            aggregator = TrackAggregator(fetcher, config.pacing)
            await export_playlist(aggregator, playlists[0], config.output.directory)

Configuration:
    Requires a config.yaml file in the current directory:

        spotify:
          client_id: "your_client_id"

        output:
          directory: "~/Desktop/SpotExporter"

Dependencies:
    - aiohttp: Async HTTP client for the Web API
    - spotipy: PKCE authorization flow
    - rich-click: CLI framework with colors
    - rich: Progress bar and tables
    - tqdm: Logging that plays well with progress output
    - pyyaml: Configuration file parsing
    - python-dotenv: .env support for the client id
"""

__version__ = "0.1.0"
__author__ = "spot-exporter"
__license__ = "MIT"

# Convenience imports for common usage
from spot_exporter.core import (
    Config,
    ConfigError,
    ExportError,
    SessionContext,
    SessionStore,
    SpotExporterError,
    SpotifyError,
    get_logger,
    load_config,
    setup_logging,
)
from spot_exporter.spotify import (
    ExportRow,
    Playlist,
    PlaylistEnumerator,
    RateLimitedFetcher,
    TrackAggregator,
)

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "SessionContext",
    "SessionStore",
    "setup_logging",
    "get_logger",
    # Exceptions
    "SpotExporterError",
    "ConfigError",
    "SpotifyError",
    "ExportError",
    # Spotify
    "RateLimitedFetcher",
    "PlaylistEnumerator",
    "TrackAggregator",
    "Playlist",
    "ExportRow",
]
