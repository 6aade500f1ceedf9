"""
Export module for spot-exporter.

Turns aggregated rows into files:
    - csv_format: CSV rendering, parsing and upload validation
    - stats: summary statistics for the analysis report
    - table: sortable/filterable view over rows
    - report: self-contained HTML analysis report
    - assembler: single playlist CSV, zip of all playlists, CSV loading
"""

from spot_exporter.export.csv_format import (
    CSV_HEADER,
    parse_csv,
    render_csv,
    validate_csv_text,
)
from spot_exporter.export.stats import PlaylistSummary, summarize
from spot_exporter.export.table import TableView
from spot_exporter.export.report import REPORT_MODES, render_report
from spot_exporter.export.assembler import (
    ZIP_FILENAME,
    ExportSummary,
    export_all,
    export_playlist,
    load_csv_file,
    write_report,
)

__all__ = [
    # CSV
    "CSV_HEADER",
    "render_csv",
    "parse_csv",
    "validate_csv_text",
    # Analysis
    "PlaylistSummary",
    "summarize",
    "TableView",
    "REPORT_MODES",
    "render_report",
    # Files
    "ZIP_FILENAME",
    "ExportSummary",
    "export_playlist",
    "export_all",
    "write_report",
    "load_csv_file",
]
