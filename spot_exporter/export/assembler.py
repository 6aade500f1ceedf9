"""
Writing exports to disk.

Operations:
    export_playlist()  - one playlist -> <name>.csv
    export_all()       - every playlist -> spotify_playlists.zip
    write_report()     - one playlist -> <name>.html
    load_csv_file()    - a previously exported CSV -> rows, for analysis

Batch Export:
    Playlists are aggregated one after another. A playlist that fails
    with a Spotify or network error is logged to export_failures.log and
    skipped; the others are still packaged. An authentication error
    stops the batch, since every following playlist would fail the same
    way. Playlists with the same file name get "_" appended until the
    name is unique inside the zip.
"""

import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Sequence

from spot_exporter.core.exceptions import CsvFormatError, ExportError, SpotExporterError
from spot_exporter.core.logger import format_exported_message, get_logger, log_export_failure
from spot_exporter.core.progress import ExportProgressBar
from spot_exporter.export.csv_format import parse_csv, render_csv
from spot_exporter.export.report import render_report
from spot_exporter.export.table import TableView
from spot_exporter.spotify.models import ExportRow, Playlist
from spot_exporter.utils import ensure_directory, playlist_file_name

if TYPE_CHECKING:
    from spot_exporter.spotify.aggregator import TrackAggregator

logger = get_logger(__name__)


ZIP_FILENAME = "spotify_playlists.zip"

# UTF-8 with BOM, so spreadsheet applications detect the encoding
CSV_ENCODING = "utf-8-sig"


@dataclass
class ExportSummary:
    """
    Outcome of a batch export.

    Attributes:
        archive: Path of the written zip, None if nothing succeeded.
        succeeded: Names of exported playlists, in export order.
        failed: Names of playlists that could not be exported.
    """
    archive: Path | None = None
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def unique_file_name(stem: str, taken: set[str], extension: str = ".csv") -> str:
    """Append underscores to stem until stem + extension is not taken."""
    while stem + extension in taken:
        stem += "_"
    return stem + extension


def write_csv_file(path: Path, text: str) -> Path:
    """Write a CSV document with BOM."""
    try:
        with open(path, "w", encoding=CSV_ENCODING, newline="") as f:
            f.write(text)
    except OSError as e:
        raise ExportError(
            f"Failed to write {path}: {e}",
            details={"file_path": str(path), "original_error": str(e)},
        ) from e
    return path


async def export_playlist(
    aggregator: "TrackAggregator",
    playlist: Playlist,
    directory: Path,
) -> Path:
    """
    Aggregate one playlist and write it as <file name>.csv.

    Raises:
        SpotifyError: If aggregation fails.
        ExportError: If the file cannot be written.
    """
    rows = await aggregator.build_rows(playlist)
    path = ensure_directory(directory) / f"{playlist_file_name(playlist.name)}.csv"
    write_csv_file(path, render_csv(rows))
    logger.info(format_exported_message(playlist.name, len(rows), path))
    return path


async def export_all(
    aggregator: "TrackAggregator",
    playlists: Sequence[Playlist],
    directory: Path,
    progress: ExportProgressBar | None = None,
) -> ExportSummary:
    """
    Aggregate every playlist and package the CSVs into one zip.

    Args:
        aggregator: Aggregator used for every playlist.
        playlists: Playlists to export, in order.
        directory: Where spotify_playlists.zip is written.
        progress: Optional progress bar, updated per playlist.

    Returns:
        ExportSummary with the archive path and per-playlist outcome.

    Raises:
        AuthenticationError: Aborts the batch; no archive is written.
        ExportError: If the archive cannot be written.
    """
    summary = ExportSummary()
    documents: dict[str, str] = {}

    for playlist in playlists:
        if progress is not None:
            progress.set_current(playlist.name)

        try:
            rows = await aggregator.build_rows(playlist)
        except SpotExporterError as e:
            if getattr(e, "is_auth_error", False):
                raise
            log_export_failure(logger, playlist.name, playlist.spotify_url, str(e))
            logger.debug(f"Failure details for {playlist.name}: {e.details}")
            summary.failed.append(playlist.name)
            if progress is not None:
                progress.update(success=False)
            continue

        name = unique_file_name(playlist_file_name(playlist.name), set(documents))
        documents[name] = render_csv(rows)
        summary.succeeded.append(playlist.name)
        if progress is not None:
            progress.update(success=True)

    if not documents:
        logger.warning("No playlist could be exported, zip not written")
        return summary

    archive = ensure_directory(directory) / ZIP_FILENAME
    try:
        with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, text in documents.items():
                zf.writestr(name, text.encode(CSV_ENCODING))
    except OSError as e:
        raise ExportError(
            f"Failed to write {archive}: {e}",
            details={"file_path": str(archive), "original_error": str(e)},
        ) from e

    summary.archive = archive
    logger.info(
        f"Packaged {len(summary.succeeded)} playlists into {archive}"
        + (f" ({len(summary.failed)} failed)" if summary.failed else "")
    )
    return summary


def write_report(
    playlist_name: str,
    rows: Iterable[ExportRow],
    directory: Path,
    mode: str = "auto",
    cover_url: str | None = None,
    owner: str | None = None,
    view: TableView | None = None,
) -> Path:
    """
    Render the HTML report and write it as <file name>.html.

    A sorted or filtered view only changes the track table; the
    statistics always cover every row.
    """
    rows = list(rows)
    path = ensure_directory(directory) / f"{playlist_file_name(playlist_name)}.html"
    document = render_report(
        playlist_name, rows, mode=mode, cover_url=cover_url, owner=owner, view=view
    )
    try:
        path.write_text(document, encoding="utf-8")
    except OSError as e:
        raise ExportError(
            f"Failed to write {path}: {e}",
            details={"file_path": str(path), "original_error": str(e)},
        ) from e
    logger.info(f"Report written to {path}")
    return path


def load_csv_file(path: Path) -> tuple[str, list[ExportRow]]:
    """
    Read a previously exported CSV for analysis.

    Returns:
        A display name derived from the file name ("Road_Trip.csv" ->
        "Road Trip") and the parsed rows.

    Raises:
        CsvFormatError: If the file cannot be read or is not an export.
    """
    try:
        text = path.read_text(encoding=CSV_ENCODING)
    except (OSError, UnicodeDecodeError) as e:
        raise CsvFormatError(
            f"Failed to read {path}: {e}",
            details={"file_path": str(path), "original_error": str(e)},
        ) from e

    _, rows = parse_csv(text)
    name = path.stem.replace("_", " ")
    logger.info(f"Loaded {len(rows)} tracks from {path}")
    return name, rows
