"""
Sortable, filterable view over export rows.

The HTML report renders its track table from a TableView. The CLI
builds one for --sort/--filter and hands it to the report, while the
statistics keep covering every row.
"""

from dataclasses import dataclass
from typing import Iterable

from spot_exporter.export.csv_format import format_value
from spot_exporter.spotify.models import EXPORT_COLUMNS, ExportRow


SIMPLE_COLUMNS = EXPORT_COLUMNS[:12]


def _as_number(cell: str) -> float | None:
    try:
        return float(cell)
    except ValueError:
        return None


@dataclass(frozen=True)
class TableView:
    """
    A header plus rows of display strings.

    Views are immutable; sort_by() and filter() return new views.
    """
    header: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]

    @classmethod
    def from_rows(cls, rows: Iterable[ExportRow], include_features: bool = True) -> "TableView":
        columns = EXPORT_COLUMNS if include_features else SIMPLE_COLUMNS
        cells = []
        for row in rows:
            values = row.values()[:len(columns)]
            cells.append(tuple(
                "; ".join(value) if column == "Artist Name(s)" else format_value(value)
                for column, value in zip(columns, values)
            ))
        return cls(header=tuple(columns), rows=tuple(cells))

    def column_index(self, column: str) -> int:
        """Index of a column, matched case-insensitively. Raises KeyError if absent."""
        lowered = column.strip().lower()
        for index, name in enumerate(self.header):
            if name.lower() == lowered:
                return index
        raise KeyError(column)

    def column(self, column: str) -> list[str]:
        index = self.column_index(column)
        return [row[index] for row in self.rows]

    def sort_by(self, column: str, descending: bool = False) -> "TableView":
        """
        Sort by one column.

        Columns whose non-blank cells are all numeric sort numerically,
        others case-insensitively. Blank cells always go last.
        """
        index = self.column_index(column)
        filled = [row for row in self.rows if row[index] != ""]
        blank = [row for row in self.rows if row[index] == ""]

        numbers = [_as_number(row[index]) for row in filled]
        if all(n is not None for n in numbers):
            filled.sort(key=lambda row: _as_number(row[index]), reverse=descending)
        else:
            filled.sort(key=lambda row: row[index].lower(), reverse=descending)

        return TableView(self.header, tuple(filled + blank))

    def filter(self, term: str) -> "TableView":
        """Keep rows where any cell contains term, case-insensitively."""
        needle = term.strip().lower()
        if not needle:
            return self
        return TableView(
            self.header,
            tuple(row for row in self.rows if any(needle in cell.lower() for cell in row)),
        )

    def __len__(self) -> int:
        return len(self.rows)

