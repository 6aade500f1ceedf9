"""
Exception classes for spot-exporter.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus an optional details
dictionary, so that the CLI can print a short message while the full
context ends up in the log files.

Exception Hierarchy:
    SpotExporterError (base)
        ConfigError - Configuration file issues
        SpotifyError - Spotify Web API issues (carries the HTTP status)
            AuthenticationError - Missing, stale or rejected token
            PermissionDeniedError - 403 on an endpoint without fallback
        PlaylistNotFoundError - Lookup by id/name found nothing
        ExportError - Writing CSV/HTML/zip output failed
            CsvFormatError - Uploaded CSV is empty or lacks required headers
"""


class SpotExporterError(Exception):
    """
    Base exception for all spot-exporter errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all spot-exporter errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., url, playlist).

    Example:
        try:
            rows = await aggregator.build_rows(playlist)
        except SpotExporterError as e:
            logger.error(f"Export failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'url': Request URL that caused the error
                     - 'playlist': Playlist name involved in the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(SpotExporterError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml not found
        - config.yaml has invalid YAML syntax
        - Required fields missing (client_id, output directory)
        - Invalid field values (e.g., negative retry budget)

    Example:
        raise ConfigError(
            "Missing required field 'client_id' in config.yaml",
            details={'file_path': '/path/to/config.yaml', 'missing_field': 'client_id'}
        )
    """
    pass


class SpotifyError(SpotExporterError):
    """
    Raised when there's an issue with the Spotify Web API.

    Can be CRITICAL (auth failure) or NON-CRITICAL (one playlist failed
    during a batch export).

    Common causes:
        - Invalid or expired token (CRITICAL)
        - Rate limiting with an exhausted retry budget
        - Repeated 502 Bad Gateway responses
        - Network connectivity issues

    Attributes:
        http_status: Numeric HTTP status of the failed response, or None
                     for transport failures (connection reset, timeout).
        is_auth_error: True if this is an authentication error (CRITICAL).
        is_rate_limit: True if this is a rate limit error.

    Example:
        raise SpotifyError(
            "Request failed with status 500",
            details={'url': url},
            http_status=500
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        http_status: int | None = None,
        is_auth_error: bool = False,
        is_rate_limit: bool = False
    ) -> None:
        """
        Initialize Spotify error with status and classification flags.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
            http_status: HTTP status code of the failing response, if any.
            is_auth_error: Set to True if this is an authentication failure.
                          Authentication errors are CRITICAL and abort the session.
            is_rate_limit: Set to True if the rate limit retry budget ran out.
        """
        super().__init__(message, details)
        self.http_status = http_status
        self.is_auth_error = is_auth_error
        self.is_rate_limit = is_rate_limit


class AuthenticationError(SpotifyError):
    """
    Raised when no usable access token is available or Spotify rejects it (401).

    Terminal for the whole session: no partial results are produced and the
    user has to log in again.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        http_status: int | None = None
    ) -> None:
        super().__init__(message, details, http_status=http_status, is_auth_error=True)


class PermissionDeniedError(SpotifyError):
    """
    Raised on a 403 Forbidden response when the caller supplied no fallback.

    The audio-features wave always supplies a fallback, so this only surfaces
    for endpoints where missing permission means the data is unobtainable.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message, details, http_status=403)


class PlaylistNotFoundError(SpotExporterError):
    """
    Raised when a playlist id or name given on the command line matches
    none of the user's playlists.

    Example:
        raise PlaylistNotFoundError(
            "No playlist matches 'Road Trip'",
            details={'query': 'Road Trip', 'available': 42}
        )
    """
    pass


class ExportError(SpotExporterError):
    """
    Raised when export output cannot be produced.

    Common causes:
        - Output directory not writable
        - Disk full while writing the zip package
    """
    pass


class CsvFormatError(ExportError):
    """
    Raised when a CSV file handed in for analysis is not a playlist export.

    Common causes:
        - File is empty
        - File has a header but no data rows
        - Header lacks one of the required columns
          (track name, artist name, album name)

    Example:
        raise CsvFormatError(
            "CSV missing required headers: album name",
            details={'missing_headers': ['album name']}
        )
    """
    pass
