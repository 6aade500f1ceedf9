"""
Core module for spot-exporter.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with multiple outputs
    - session: Token/verifier session context and its JSON store
    - progress: Rich progress bar for batch export

Usage:
    from spot_exporter.core import (
        Config, load_config,
        SessionContext, SessionStore,
        setup_logging, get_logger,
        SpotExporterError, ConfigError, SpotifyError
    )
"""

from spot_exporter.core.config import (
    Config,
    FetchConfig,
    OutputConfig,
    PacingConfig,
    SpotifyConfig,
    load_config,
)
from spot_exporter.core.exceptions import (
    AuthenticationError,
    ConfigError,
    CsvFormatError,
    ExportError,
    PermissionDeniedError,
    PlaylistNotFoundError,
    SpotExporterError,
    SpotifyError,
)
from spot_exporter.core.logger import (
    get_logger,
    log_export_failure,
    setup_logging,
    shutdown_logging,
)
from spot_exporter.core.session import SESSION_FILENAME, SessionContext, SessionStore

__all__ = [
    # Config
    "Config",
    "SpotifyConfig",
    "OutputConfig",
    "FetchConfig",
    "PacingConfig",
    "load_config",
    # Session
    "SESSION_FILENAME",
    "SessionContext",
    "SessionStore",
    # Exceptions
    "SpotExporterError",
    "ConfigError",
    "SpotifyError",
    "AuthenticationError",
    "PermissionDeniedError",
    "PlaylistNotFoundError",
    "ExportError",
    "CsvFormatError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_export_failure",
    "shutdown_logging",
]
