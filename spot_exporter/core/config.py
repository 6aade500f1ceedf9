"""
Configuration management for spot-exporter.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - Spotify application client id and PKCE redirect URI
    - Output directory for CSV files, zip packages, reports and logs
    - Retry policy of the rate-limited fetcher
    - Request pacing (stagger step per wave)

Environment:
    A .env file in the working directory is loaded with python-dotenv.
    SPOTIFY_CLIENT_ID, when set, overrides spotify.client_id so the id
    does not have to be committed together with config.yaml.

Configuration File Location:
    The config.yaml file must be in the current working directory
    when running the application, unless --config points elsewhere.

Example config.yaml:
    spotify:
      client_id: "your_client_id_here"
      redirect_uri: "http://127.0.0.1:8888/callback"

    output:
      directory: "~/Desktop/SpotExporter"

    fetch:
      bad_gateway_retries: 2
      bad_gateway_step_ms: 1000
      rate_limit_retries: null   # null = retry 429 forever
      request_timeout: null      # seconds, null = no timeout

    pacing:
      track_page_step_ms: 100
      artist_chunk_step_ms: 100
      album_chunk_step_ms: 120
      feature_batch_step_ms: 100
      playlist_page_step_ms: 2
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from spot_exporter.core.exceptions import ConfigError


# Default configuration file name (always in current working directory)
CONFIG_FILENAME = "config.yaml"

# Environment variable overriding spotify.client_id
CLIENT_ID_ENV = "SPOTIFY_CLIENT_ID"

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"


@dataclass(frozen=True)
class SpotifyConfig:
    """
    Spotify application configuration.

    Only a client id is needed: the PKCE flow replaces the client secret
    with a locally generated code verifier.

    Attributes:
        client_id: The Spotify application client ID from the Developer Dashboard.
        redirect_uri: Redirect URI registered for the application.
    """
    client_id: str
    redirect_uri: str = DEFAULT_REDIRECT_URI


@dataclass(frozen=True)
class OutputConfig:
    """
    Output directory configuration.

    Attributes:
        directory: Absolute path where exports, reports, the session file
                   and the logs/ subdirectory are written.
                   Path expansion is performed (~ is expanded to home directory).
    """
    directory: Path


@dataclass(frozen=True)
class FetchConfig:
    """
    Retry policy of the rate-limited fetcher.

    Attributes:
        bad_gateway_retries: How many times a 502 response is retried. Default 2.
        bad_gateway_step_ms: Backoff unit for 502 retries; retry n waits n * step.
        rate_limit_retries: Cap on 429 retries per request, None for unbounded.
        request_timeout: Total timeout per request in seconds, None for no timeout.
    """
    bad_gateway_retries: int = 2
    bad_gateway_step_ms: int = 1000
    rate_limit_retries: int | None = None
    request_timeout: float | None = None


@dataclass(frozen=True)
class PacingConfig:
    """
    Stagger steps used to spread each wave of parallel requests.

    Request i of a wave is delayed by i * step milliseconds before its
    first attempt. Playlist-list pages use 2 * offset - 100 ms, so their
    step is expressed per offset unit.
    """
    track_page_step_ms: int = 100
    artist_chunk_step_ms: int = 100
    album_chunk_step_ms: int = 120
    feature_batch_step_ms: int = 100
    playlist_page_step_ms: int = 2


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable (frozen dataclass).

    Attributes:
        spotify: Spotify application settings.
        output: Output directory settings.
        fetch: Retry policy.
        pacing: Wave stagger steps.

    Example:
        config = load_config()
        print(f"Exporting to: {config.output.directory}")
    """
    spotify: SpotifyConfig
    output: OutputConfig
    fetch: FetchConfig = field(default_factory=FetchConfig)
    pacing: PacingConfig = field(default_factory=PacingConfig)


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If the config file is not found, has invalid YAML syntax,
                     is missing required fields, or contains invalid values.

    Behavior:
        1. Load .env (does not override variables already set)
        2. Locate config file (explicit path or CWD/config.yaml)
        3. Read and parse YAML content
        4. Validate structure (required sections exist)
        5. Parse each section, applying defaults for optional ones
    """
    load_dotenv()

    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return parse_config(raw_config)


def parse_config(raw_config: dict[str, Any]) -> Config:
    """
    Build a Config from an already parsed YAML dictionary.

    Split out of load_config() so tests can validate dictionaries directly.
    """
    _validate_config(raw_config)

    return Config(
        spotify=_parse_spotify_config(raw_config.get("spotify") or {}),
        output=_parse_output_config(raw_config["output"]),
        fetch=_parse_fetch_config(_optional_section(raw_config, "fetch")),
        pacing=_parse_pacing_config(_optional_section(raw_config, "pacing")),
    )


def _validate_config(raw_config: dict[str, Any]) -> None:
    """
    Validate that required sections exist and every present section is a mapping.

    The spotify section may be omitted when SPOTIFY_CLIENT_ID is set.

    Raises:
        ConfigError: If validation fails.
    """
    required_sections = ["output"]
    if not os.environ.get(CLIENT_ID_ENV):
        required_sections.insert(0, "spotify")

    for section in required_sections:
        if section not in raw_config:
            raise ConfigError(
                f"Missing required section: '{section}'",
                details={"missing_section": section}
            )

    for section in ("spotify", "output", "fetch", "pacing"):
        value = raw_config.get(section)
        if value is not None and not isinstance(value, dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )


def _optional_section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    return raw_config.get(name) or {}


def _parse_spotify_config(spotify_section: dict[str, Any]) -> SpotifyConfig:
    """
    Parse the Spotify section, letting SPOTIFY_CLIENT_ID override client_id.

    Raises:
        ConfigError: If no client id is available or redirect_uri is not a string.
    """
    client_id = os.environ.get(CLIENT_ID_ENV) or spotify_section.get("client_id", "")

    if not isinstance(client_id, str) or not client_id.strip():
        raise ConfigError(
            "'spotify.client_id' must be a non-empty string "
            f"(or set {CLIENT_ID_ENV})",
            details={"field": "spotify.client_id"}
        )

    redirect_uri = spotify_section.get("redirect_uri", DEFAULT_REDIRECT_URI)
    if not isinstance(redirect_uri, str) or not redirect_uri.strip():
        raise ConfigError(
            "'spotify.redirect_uri' must be a non-empty string",
            details={"field": "spotify.redirect_uri"}
        )

    return SpotifyConfig(
        client_id=client_id.strip(),
        redirect_uri=redirect_uri.strip()
    )


def _parse_output_config(output_section: dict[str, Any]) -> OutputConfig:
    """
    Parse and validate the output configuration section.

    Expands ~ to home directory and converts to absolute Path.
    Does NOT create the directory (that happens at export time).

    Raises:
        ConfigError: If directory is missing or empty.
    """
    directory = output_section.get("directory", "")

    if not isinstance(directory, str) or not directory.strip():
        raise ConfigError(
            "'output.directory' must be a non-empty string",
            details={"field": "output.directory"}
        )

    return OutputConfig(directory=Path(directory.strip()).expanduser().resolve())


def _parse_fetch_config(fetch_section: dict[str, Any]) -> FetchConfig:
    """
    Parse the retry policy, applying defaults for missing fields.

    Raises:
        ConfigError: If a budget is negative or the timeout is not positive.
    """
    defaults = FetchConfig()

    bad_gateway_retries = _non_negative_int(
        fetch_section, "bad_gateway_retries", defaults.bad_gateway_retries, "fetch"
    )
    bad_gateway_step_ms = _non_negative_int(
        fetch_section, "bad_gateway_step_ms", defaults.bad_gateway_step_ms, "fetch"
    )

    rate_limit_retries = fetch_section.get("rate_limit_retries")
    if rate_limit_retries is not None:
        rate_limit_retries = _non_negative_int(fetch_section, "rate_limit_retries", 0, "fetch")

    request_timeout = fetch_section.get("request_timeout")
    if request_timeout is not None:
        if isinstance(request_timeout, bool) or not isinstance(request_timeout, (int, float)) \
                or request_timeout <= 0:
            raise ConfigError(
                "'fetch.request_timeout' must be a positive number or null",
                details={"field": "fetch.request_timeout", "value": request_timeout}
            )
        request_timeout = float(request_timeout)

    return FetchConfig(
        bad_gateway_retries=bad_gateway_retries,
        bad_gateway_step_ms=bad_gateway_step_ms,
        rate_limit_retries=rate_limit_retries,
        request_timeout=request_timeout,
    )


def _parse_pacing_config(pacing_section: dict[str, Any]) -> PacingConfig:
    """Parse the pacing section; every step is a non-negative integer of milliseconds."""
    defaults = PacingConfig()
    return PacingConfig(**{
        name: _non_negative_int(pacing_section, name, getattr(defaults, name), "pacing")
        for name in PacingConfig.__dataclass_fields__
    })


def _non_negative_int(section: dict[str, Any], name: str, default: int, prefix: str) -> int:
    value = section.get(name)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(
            f"'{prefix}.{name}' must be a non-negative integer",
            details={"field": f"{prefix}.{name}", "value": value}
        )
    return value
