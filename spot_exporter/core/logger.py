"""
Logging configuration for spot-exporter.

This module sets up the logging system with multiple outputs:
    - Console: Real-time progress with tqdm-compatible formatting
    - log_full.log: Complete log of all events (DEBUG and above)
    - log_errors.log: Only ERROR and CRITICAL level messages
    - export_failures.log: Playlists that could not be exported, with reason

Everything printed to screen is also saved to file, then filtered into
specialized files.

Log File Locations:
    All log files are created in a logs/ subdirectory of the output
    directory specified in config.yaml, one timestamped set per run.

Usage:
    from spot_exporter.core.logger import setup_logging, get_logger

    setup_logging(output_dir)  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Starting export")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that prefixes the level name with an ANSI color.

    Colors:
        - DEBUG: Blue
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bold Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        return f"{color}{record.levelname}{Colors.RESET}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking progress bars.

    Progress bars redraw in place using carriage returns; plain writes to
    stderr would tear them. tqdm.write() prints the message above any
    active bar instead.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class ExportFailureHandler(logging.Handler):
    """
    Handler that captures failed playlist exports for the failure report.

    Listens for log records carrying export failure information and writes
    them to export_failures.log in a simple, human-readable format:

        Road Trip
        https://open.spotify.com/playlist/xxxxx
        Spotify error (status 500): Request failed

    The handler looks for specific extra fields in log records:
        - 'export_failed_playlist_name': Name of the playlist
        - 'export_failed_playlist_url': Spotify URL of the playlist
        - 'export_failed_reason': Why the export failed

    Only records containing these fields are written to the report.

    Usage:
        log_export_failure(logger, playlist.name, playlist.spotify_url, str(error))
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file in write mode (overwrites existing content)."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "export_failed_playlist_name"):
            return

        if self.report_file is None:
            return

        try:
            name = getattr(record, "export_failed_playlist_name", "Unknown")
            url = getattr(record, "export_failed_playlist_url", "")
            reason = getattr(record, "export_failed_reason", "")

            self.report_file.write(f"{name}\n")
            self.report_file.write(f"{url}\n")
            self.report_file.write(f"{reason}\n\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """Close the report file handle. Safe to call multiple times."""
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """
    Filter that only allows ERROR and CRITICAL level records.

    Used by the error log file handler to exclude DEBUG, INFO, and WARNING.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(output_dir: Path, verbose: bool = False) -> None:
    """
    Configure the logging system for the application.

    This function should be called ONCE at application startup, after
    the configuration is loaded but before any other operations.

    Args:
        output_dir: Directory where log files will be created.
                    Logs are stored in a 'logs' subdirectory.
        verbose: Show DEBUG messages on the console too.

    Behavior:
        1. Create output_dir/logs if it doesn't exist
        2. Generate timestamp for this run's log files
        3. Configure root logger level to DEBUG
        4. Console handler (TqdmLoggingHandler), INFO (DEBUG if verbose)
        5. Full log file handler: logs/log_full_{timestamp}.log, DEBUG
        6. Error log file handler: logs/log_errors_{timestamp}.log, ERROR+
        7. Export failure handler: logs/export_failures_{timestamp}.log

    See Also:
        log_export_failure(): Helper to log with correct extra fields
    """
    logs_dir = output_dir / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    # Console handler (tqdm-compatible) with colors
    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    full_log_path = logs_dir / f"log_full_{timestamp}.log"
    full_handler = logging.FileHandler(full_log_path, mode="w", encoding="utf-8")
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_log_path = logs_dir / f"log_errors_{timestamp}.log"
    error_handler = logging.FileHandler(error_log_path, mode="w", encoding="utf-8")
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    export_failures_path = logs_dir / f"export_failures_{timestamp}.log"
    export_handler = ExportFailureHandler(export_failures_path)
    export_handler.open()
    root_logger.addHandler(export_handler)

    # aiohttp is chatty at DEBUG
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Note:
        Loggers obtained before setup_logging() is called will have no
        handlers and will not produce output.
    """
    return logging.getLogger(name)


def format_exported_message(name: str, rows: int, path: Path) -> str:
    """Format an 'Exported' message with colors."""
    return (
        f"{Colors.GREEN}Exported{Colors.RESET}: "
        f"{name} ({rows} tracks) -> "
        f"{Colors.CYAN}{path}{Colors.RESET}"
    )


def log_export_failure(
    logger: logging.Logger,
    playlist_name: str,
    playlist_url: str,
    reason: str
) -> None:
    """
    Log a playlist whose export failed.

    Logs an ERROR level message and attaches the extra fields that
    ExportFailureHandler uses to write to export_failures.log.

    Example:
        log_export_failure(
            logger,
            playlist_name="Road Trip",
            playlist_url="https://open.spotify.com/playlist/xxx",
            reason="Request failed with status 500"
        )
    """
    logger.error(
        f"Export failed: {playlist_name} - {reason}",
        extra={
            "export_failed_playlist_name": playlist_name,
            "export_failed_playlist_url": playlist_url,
            "export_failed_reason": reason,
        }
    )


def shutdown_logging() -> None:
    """
    Properly shut down the logging system.

    Flushes and closes every handler on the root logger, then removes them.
    Called from the CLI's finally block.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except OSError:
            pass
        root_logger.removeHandler(handler)
