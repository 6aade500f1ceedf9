"""Test configuration loading and session persistence"""

import json
import stat
import sys
import time
from pathlib import Path

import pytest

from spot_exporter.core.config import (
    CLIENT_ID_ENV,
    DEFAULT_REDIRECT_URI,
    FetchConfig,
    PacingConfig,
    load_config,
    parse_config,
)
from spot_exporter.core.exceptions import ConfigError
from spot_exporter.core.session import SessionContext, SessionStore

MINIMAL = {
    "spotify": {"client_id": "abc123"},
    "output": {"directory": "~/exports"},
}


@pytest.fixture(autouse=True)
def no_client_id_env(monkeypatch):
    monkeypatch.delenv(CLIENT_ID_ENV, raising=False)


class TestConfig:
    """Test config parsing and validation"""

    def test_minimal(self):
        config = parse_config(MINIMAL)

        assert config.spotify.client_id == "abc123"
        assert config.spotify.redirect_uri == DEFAULT_REDIRECT_URI
        assert config.output.directory == (Path.home() / "exports").resolve()
        assert config.fetch == FetchConfig()
        assert config.pacing == PacingConfig()

    def test_defaults(self):
        fetch = FetchConfig()
        pacing = PacingConfig()

        assert fetch.bad_gateway_retries == 2
        assert fetch.rate_limit_retries is None
        assert fetch.request_timeout is None
        assert (pacing.track_page_step_ms, pacing.artist_chunk_step_ms) == (100, 100)
        assert (pacing.album_chunk_step_ms, pacing.feature_batch_step_ms) == (120, 100)

    def test_fetch_section(self):
        config = parse_config({
            **MINIMAL,
            "fetch": {"bad_gateway_retries": 5, "rate_limit_retries": 3, "request_timeout": 30},
        })

        assert config.fetch.bad_gateway_retries == 5
        assert config.fetch.rate_limit_retries == 3
        assert config.fetch.request_timeout == 30.0

    def test_missing_output(self):
        with pytest.raises(ConfigError, match="output"):
            parse_config({"spotify": {"client_id": "abc"}})

    def test_missing_client_id(self):
        with pytest.raises(ConfigError, match="client_id"):
            parse_config({"spotify": {}, "output": {"directory": "/tmp/x"}})

    def test_client_id_from_environment(self, monkeypatch):
        monkeypatch.setenv(CLIENT_ID_ENV, "from-env")

        config = parse_config({"output": {"directory": "/tmp/x"}})

        assert config.spotify.client_id == "from-env"

    @pytest.mark.parametrize("fetch", [
        {"bad_gateway_retries": -1},
        {"bad_gateway_retries": "2"},
        {"rate_limit_retries": True},
        {"request_timeout": 0},
    ])
    def test_invalid_fetch_values(self, fetch):
        with pytest.raises(ConfigError):
            parse_config({**MINIMAL, "fetch": fetch})

    def test_section_must_be_mapping(self):
        with pytest.raises(ConfigError, match="dictionary"):
            parse_config({**MINIMAL, "pacing": [1, 2]})

    def test_load_file(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        (temp_dir / "config.yaml").write_text(
            "spotify:\n  client_id: file-id\noutput:\n  directory: out\n",
            encoding="utf-8",
        )

        config = load_config()

        assert config.spotify.client_id == "file-id"
        assert config.output.directory == (temp_dir / "out").resolve()

    def test_load_missing_file(self, temp_dir):
        with pytest.raises(ConfigError, match="not found"):
            load_config(temp_dir / "missing.yaml")

    def test_load_invalid_yaml(self, temp_dir):
        path = temp_dir / "config.yaml"
        path.write_text("spotify: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)


class TestSession:
    """Test SessionContext and SessionStore"""

    def test_freshness(self):
        now = 1_000_000.0
        session = SessionContext("token", issued_at=now)

        assert session.is_fresh(now + 3599)
        assert not session.is_fresh(now + 3600)

    def test_invalidate(self):
        calls = []
        session = SessionContext("token", time.time(), on_invalidate=lambda: calls.append(1))

        session.invalidate()

        assert session.access_token is None
        assert not session.is_fresh()
        assert calls == [1]

    def test_save_and_load(self, temp_dir):
        store = SessionStore(temp_dir / "session.json")
        store.save(SessionContext("token", time.time(), code_verifier="verifier"))

        loaded = store.load()

        assert loaded.access_token == "token"
        assert loaded.code_verifier == "verifier"
        if sys.platform != "win32":
            assert stat.S_IMODE(store.path.stat().st_mode) == 0o600

    def test_loaded_session_invalidation_removes_file(self, temp_dir):
        store = SessionStore(temp_dir / "session.json")
        store.save(SessionContext("token", time.time()))

        store.load().invalidate()

        assert not store.path.exists()

    def test_stale_session_removed(self, temp_dir):
        store = SessionStore(temp_dir / "session.json")
        store.save(SessionContext("token", time.time() - 4000))

        assert store.load() is None
        assert not store.path.exists()

    def test_malformed_file(self, temp_dir):
        path = temp_dir / "session.json"
        path.write_text(json.dumps({"access_token": "x"}), encoding="utf-8")

        assert SessionStore(path).load() is None

    def test_missing_file_and_clear(self, temp_dir):
        store = SessionStore(temp_dir / "session.json")

        assert store.load() is None
        store.clear()
