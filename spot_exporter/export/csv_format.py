"""
CSV rendering and parsing of export rows.

Output format:
    - Header line with the 24 column names of EXPORT_COLUMNS
    - One line per row, "\\n" line endings
    - Free-text cells (track name, album name, artist names, genres,
      record label) are always wrapped in double quotes, with inner
      quotes doubled
    - Multiple artists are joined with ";" after removing ";" from
      each name
    - Other cells are bare: booleans as true/false, missing values as
      an empty cell, integral floats without ".0"

Files are written as UTF-8 with a BOM (encoding "utf-8-sig") so that
spreadsheet applications pick the right encoding; parsing tolerates
the BOM being present or absent.
"""

import csv
import io
from typing import Any, Iterable

from spot_exporter.core.exceptions import CsvFormatError
from spot_exporter.spotify.models import EXPORT_COLUMNS, ExportRow


CSV_HEADER = ",".join(EXPORT_COLUMNS)

# Columns whose cells are always quoted
QUOTED_COLUMNS = frozenset({
    "Track Name",
    "Album Name",
    "Artist Name(s)",
    "Genres",
    "Record Label",
})

# Substrings the header must contain for a CSV to be analyzable
REQUIRED_HEADERS = ("track name", "artist name", "album name")

BOM = "\ufeff"


def quote(text: str | None) -> str:
    """Wrap text in double quotes, doubling any quote inside it."""
    return '"' + (text or "").replace('"', '""') + '"'


def format_value(value: Any) -> str:
    """Render a non-text cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def join_artists(names: Iterable[str]) -> str:
    return ";".join(name.replace(";", "") for name in names)


def format_row(row: ExportRow) -> str:
    cells = []
    for column, value in zip(EXPORT_COLUMNS, row.values()):
        if column == "Artist Name(s)":
            cells.append(quote(join_artists(value)))
        elif column in QUOTED_COLUMNS:
            cells.append(quote(value))
        else:
            cells.append(format_value(value))
    return ",".join(cells)


def render_csv(rows: Iterable[ExportRow]) -> str:
    """Render a complete CSV document (without BOM)."""
    lines = [CSV_HEADER]
    lines.extend(format_row(row) for row in rows)
    return "\n".join(lines) + "\n"


def validate_csv_text(text: str) -> None:
    """
    Check that text looks like a playlist export.

    Raises:
        CsvFormatError: If the text is empty, has no data line, or its
                        header lacks track name, artist name or album name.
    """
    if not text or not text.strip():
        raise CsvFormatError("CSV file is empty")

    lines = [line for line in text.split("\n") if line.strip()]
    if len(lines) < 2:
        raise CsvFormatError("CSV file must contain headers and at least one data row")

    header = lines[0].lower()
    missing = [h for h in REQUIRED_HEADERS if h not in header]
    if missing:
        raise CsvFormatError(
            f"CSV missing required headers: {', '.join(missing)}",
            details={"missing_headers": missing},
        )


def parse_csv(text: str) -> tuple[list[str], list[ExportRow]]:
    """
    Parse a CSV document back into rows.

    Column lookup is by name, case-insensitively, so column order does
    not matter. Every non-empty line becomes a row, including rows of
    tracks Spotify returned as null, so counts match the export.

    Returns:
        The header as written in the file, and the rows.

    Raises:
        CsvFormatError: If the document fails validate_csv_text().
    """
    if text.startswith(BOM):
        text = text[len(BOM):]
    validate_csv_text(text)

    reader = csv.reader(io.StringIO(text, newline=""))
    header = next(reader)
    keys = [name.strip().lower() for name in header]

    rows = []
    for cells in reader:
        if not cells:
            continue
        rows.append(ExportRow.from_record(dict(zip(keys, cells))))
    return header, rows
