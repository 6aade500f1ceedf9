"""Test CSV rendering, parsing and upload validation"""

import pytest

from spot_exporter.core.exceptions import CsvFormatError
from spot_exporter.export.csv_format import (
    BOM,
    CSV_HEADER,
    format_row,
    format_value,
    join_artists,
    parse_csv,
    quote,
    render_csv,
    validate_csv_text,
)
from spot_exporter.spotify.models import EXPORT_COLUMNS, ExportRow


class TestRender:
    """Test CSV output format"""

    def test_header(self):
        assert CSV_HEADER.split(",") == list(EXPORT_COLUMNS)
        assert len(EXPORT_COLUMNS) == 24

    def test_quote_doubles_inner_quotes(self):
        assert quote('Say "Hi", Bye') == '"Say ""Hi"", Bye"'
        assert quote(None) == '""'

    def test_format_value(self):
        assert format_value(None) == ""
        assert format_value(True) == "true"
        assert format_value(False) == "false"
        assert format_value(120.0) == "120"
        assert format_value(-6.5) == "-6.5"
        assert format_value(42) == "42"

    def test_join_artists_strips_separator(self):
        assert join_artists(["AC;DC", "Queen"]) == "ACDC;Queen"

    def test_quoted_track_name(self, sample_rows):
        line = format_row(sample_rows[0])

        assert line.startswith('spotify:track:t1,"Say ""Hi"", Bye","Greatest; Hits","Alpha;Beta",1999-04-01,')
        assert ',"rock,pop","Big Label",' in line

    def test_row_without_features_has_empty_cells(self, sample_rows):
        cells = format_row(sample_rows[1]).split(",")
        assert cells[-12:] == [""] * 12

    def test_document(self, sample_rows):
        text = render_csv(sample_rows)

        assert text.endswith("\n")
        assert "\r" not in text
        lines = text.split("\n")
        assert lines[0] == CSV_HEADER
        assert len([line for line in lines if line]) == 4

    def test_empty_playlist_is_header_only(self):
        assert render_csv([]) == CSV_HEADER + "\n"


class TestParse:
    """Test parsing exported CSVs back into rows"""

    def test_round_trip(self, sample_rows):
        header, rows = parse_csv(render_csv(sample_rows))

        assert header == list(EXPORT_COLUMNS)
        assert rows == sample_rows

    def test_quoted_name_round_trip(self):
        row = ExportRow(uri="spotify:track:x", name='Say "Hi", Bye', artist_names=("A",))

        _, rows = parse_csv(render_csv([row]))

        assert rows[0].name == 'Say "Hi", Bye'

    def test_bom_tolerated(self, sample_rows):
        _, rows = parse_csv(BOM + render_csv(sample_rows))
        assert len(rows) == 3

    def test_windows_line_endings(self, sample_rows):
        _, rows = parse_csv(render_csv(sample_rows).replace("\n", "\r\n"))
        assert [row.name for row in rows] == [row.name for row in sample_rows]

    def test_reordered_and_missing_columns(self):
        text = 'Artist Name(s),Track Name,Album Name,Popularity\n"X;Y","Song","Record",55\n'

        _, rows = parse_csv(text)

        assert rows[0].name == "Song"
        assert rows[0].artist_names == ("X", "Y")
        assert rows[0].popularity == 55
        assert rows[0].features.is_empty

    def test_blank_track_row_kept(self):
        text = CSV_HEADER + "\n" + "," * 23 + "\n"

        _, rows = parse_csv(text)

        assert len(rows) == 1
        assert rows[0].name is None


class TestValidate:
    """Test upload validation"""

    def test_empty(self):
        with pytest.raises(CsvFormatError, match="empty"):
            validate_csv_text("   \n")

    def test_header_only(self):
        with pytest.raises(CsvFormatError, match="at least one data row"):
            validate_csv_text(CSV_HEADER + "\n")

    def test_missing_headers(self):
        with pytest.raises(CsvFormatError) as exc_info:
            validate_csv_text("Track Name,Duration\nfoo,1\n")

        assert "artist name" in exc_info.value.message
        assert exc_info.value.details["missing_headers"] == ["artist name", "album name"]

    def test_header_match_is_case_insensitive(self):
        validate_csv_text("TRACK NAME,ARTIST NAME,ALBUM NAME\na,b,c\n")
