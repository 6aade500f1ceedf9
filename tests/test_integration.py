"""Integration tests"""

import logging
import time
from unittest.mock import Mock, patch

import pytest
import yaml
from click.testing import CliRunner

from conftest import API, FakeHttpSession, FakeSpotify, track_item
from spot_exporter.cli import __version__, cli
from spot_exporter.core.exceptions import AuthenticationError
from spot_exporter.core.logger import get_logger, log_export_failure, setup_logging, shutdown_logging
from spot_exporter.core.session import SESSION_FILENAME, SessionContext, SessionStore
from spot_exporter.export import export_playlist, load_csv_file, render_csv, summarize
from spot_exporter.spotify import PlaylistEnumerator, RateLimitedFetcher, TrackAggregator, find_playlist
from spot_exporter.spotify.auth import login


@pytest.fixture
def config_file(temp_dir):
    """config.yaml pointing the output directory into the temp dir"""
    path = temp_dir / "config.yaml"
    path.write_text(yaml.safe_dump({
        "spotify": {"client_id": "test-client"},
        "output": {"directory": str(temp_dir / "out")},
    }), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    shutdown_logging()


class TestCli:
    """Test the command line entry point"""

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert f"spot-export {__version__}" in result.output

    def test_help_without_arguments(self):
        result = CliRunner().invoke(cli, [])

        assert result.exit_code == 0
        assert "Usage" in result.output

    @pytest.mark.parametrize("args", [
        ["--list", "--all"],
        ["--list", "--simple"],
        ["--analyze", "Mix", "--desc"],
        ["--analyze", "Mix", "--sort", "Mood"],
    ])
    def test_usage_errors(self, args):
        result = CliRunner().invoke(cli, args)

        assert result.exit_code == 2

    def test_report_from_csv(self, config_file, sample_rows, temp_dir):
        csv_path = temp_dir / "Road_Trip.csv"
        csv_path.write_text(render_csv(sample_rows), encoding="utf-8-sig")

        result = CliRunner().invoke(cli, [
            "--from-csv", str(csv_path),
            "--config", str(config_file),
            "--sort", "popularity", "--desc",
        ])

        assert result.exit_code == 0, result.output
        report = temp_dir / "out" / "Road_Trip.html"
        assert report.exists()
        html = report.read_text(encoding="utf-8")
        assert "Full Analysis" in html
        assert html.index("<td>Third</td>") < html.index("<td>Second</td>")

    def test_simple_report_rejects_feature_sort(self):
        result = CliRunner().invoke(cli, ["--analyze", "Mix", "--simple", "--sort", "Tempo"])

        assert result.exit_code == 2
        assert "Tempo" in result.output

    def test_feature_sort_on_csv_without_features(self, config_file, sample_rows, temp_dir):
        csv_path = temp_dir / "Old_Mix.csv"
        csv_path.write_text(render_csv([sample_rows[1]]), encoding="utf-8")

        result = CliRunner().invoke(cli, [
            "--from-csv", str(csv_path),
            "--config", str(config_file),
            "--sort", "Tempo",
        ])

        assert result.exit_code == 2
        assert "Unexpected error" not in result.output
        assert not (temp_dir / "out" / "Old_Mix.html").exists()

    def test_invalid_csv_exit_code(self, config_file, temp_dir):
        csv_path = temp_dir / "notes.csv"
        csv_path.write_text("a,b\n1,2\n", encoding="utf-8")

        result = CliRunner().invoke(cli, ["--from-csv", str(csv_path), "--config", str(config_file)])

        assert result.exit_code == 4

    def test_missing_session(self, config_file):
        result = CliRunner().invoke(cli, ["--list", "--config", str(config_file)])

        assert result.exit_code == 3
        assert "Not logged in" in result.output
        assert "--login" in result.output

    def test_login_and_logout(self, config_file, temp_dir):
        session_path = temp_dir / "out" / SESSION_FILENAME

        with patch("spot_exporter.cli.login", return_value=SessionContext("token", time.time())) as mock_login:
            result = CliRunner().invoke(cli, ["--login", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        mock_login.assert_called_once_with("test-client", "http://127.0.0.1:8888/callback")
        assert SessionStore(session_path).load().access_token == "token"

        result = CliRunner().invoke(cli, ["--logout", "--config", str(config_file)])

        assert result.exit_code == 0
        assert not session_path.exists()


class TestLogin:
    """Test the PKCE login wrapper"""

    def test_login_returns_session(self):
        manager = Mock()
        manager.get_access_token.return_value = "fresh-token"
        manager.code_verifier = "verifier"

        session = login("client", "http://127.0.0.1:8888/callback", auth_manager=manager)

        manager.get_access_token.assert_called_once_with(check_cache=False)
        assert session.access_token == "fresh-token"
        assert session.code_verifier == "verifier"
        assert session.is_fresh()

    def test_login_without_token(self):
        manager = Mock()
        manager.get_access_token.return_value = None

        with pytest.raises(AuthenticationError):
            login("client", "http://127.0.0.1:8888/callback", auth_manager=manager)


class TestLogging:
    """Test logger configuration"""

    def test_export_failures_file(self, temp_dir):
        setup_logging(temp_dir)
        log_export_failure(
            get_logger(__name__),
            playlist_name="Road Trip",
            playlist_url="https://open.spotify.com/playlist/p1",
            reason="Spotify error (status 500)",
        )
        shutdown_logging()

        logs = temp_dir / "logs"
        failures = next(logs.glob("export_failures_*.log")).read_text(encoding="utf-8")
        errors = next(logs.glob("log_errors_*.log")).read_text(encoding="utf-8")

        assert failures == "Road Trip\nhttps://open.spotify.com/playlist/p1\nSpotify error (status 500)\n\n"
        assert "Export failed: Road Trip" in errors

    def test_error_log_excludes_info(self, temp_dir):
        setup_logging(temp_dir)
        logging.getLogger("spot_exporter.test").info("just info")
        shutdown_logging()

        errors = next((temp_dir / "logs").glob("log_errors_*.log")).read_text(encoding="utf-8")
        assert errors == ""


class TestPipeline:
    """Playlist list to CSV to summary, against the fake Web API"""

    @pytest.mark.asyncio
    async def test_export_and_analyze(self, session, sleep, temp_dir):
        api = FakeSpotify(
            items=[track_item(i) for i in range(12)],
            playlists=[{
                "id": "p1",
                "name": "Road Trip",
                "owner": {"id": "owner"},
                "tracks": {"href": f"{API}/playlists/p1/tracks", "total": 12},
            }],
            liked_total=12,
        )
        fetcher = RateLimitedFetcher(session, http_session=FakeHttpSession(api), sleep=sleep)
        aggregator = TrackAggregator(fetcher)

        playlists = await PlaylistEnumerator(fetcher).list_playlists()
        playlist = find_playlist(playlists, "road trip")
        rows = await aggregator.build_rows(playlist)
        path = await export_playlist(aggregator, playlist, temp_dir)
        name, loaded = load_csv_file(path)

        assert name == "Road Trip"
        assert len(loaded) == 12
        assert loaded[0].genres == "genre-a0"
        assert loaded[0].record_label == "Label al0"
        assert loaded[0].features.tempo == 120.0
        assert summarize(loaded) == summarize(rows)
