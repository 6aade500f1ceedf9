# tests/test_utils.py
"""Test utilities and helpers"""

import pytest

from spot_exporter.utils import chunked, ensure_directory, playlist_file_name


class TestHelpers:
    """Test helper functions"""

    def test_chunked(self):
        """Test chunking at a ceiling"""
        assert chunked(["a", "b", "c"], 2) == [["a", "b"], ["c"]]
        assert chunked(range(4), 2) == [[0, 1], [2, 3]]
        assert chunked([], 50) == []

    def test_chunked_exact_ceiling(self):
        """Test that a full ceiling is never split"""
        chunks = chunked(range(100), 50)
        assert [len(c) for c in chunks] == [50, 50]

    def test_chunked_invalid_size(self):
        """Test chunk size validation"""
        with pytest.raises(ValueError):
            chunked([1], 0)

    def test_playlist_file_name(self):
        """Test playlist file name sanitization"""
        assert playlist_file_name("Road Trip") == "Road_Trip"
        assert playlist_file_name("AC/DC: Best Of") == "ACDC_Best_Of"
        assert playlist_file_name('What? "Now" <3 |x|') == "What_Now_3_x"
        assert playlist_file_name("Tabs\tand  spaces") == "Tabs_and_spaces"

    def test_ensure_directory(self, temp_dir):
        """Test nested directory creation"""
        path = temp_dir / "a" / "b"
        assert ensure_directory(path) == path
        assert path.is_dir()
        # Existing directory is fine
        ensure_directory(path)
