"""
Session context for authenticated Spotify access.

A SessionContext holds the bearer token obtained through the PKCE login,
the moment it was issued and the code verifier used to obtain it. It is
passed explicitly to every component that talks to Spotify, instead of
living in global state.

Lifecycle:
    - Created at login (spot_exporter.spotify.auth.login)
    - Persisted between runs by SessionStore as session.json
    - Destroyed at logout, when found older than one hour, or when
      Spotify denies audio-features access (403)

Usage:
    store = SessionStore(output_dir / SESSION_FILENAME)
    session = store.load()
    if session is None:
        session = login(client_id, redirect_uri)
        store.save(session)
"""

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from spot_exporter.core.logger import get_logger

logger = get_logger(__name__)


SESSION_FILENAME = "session.json"

# Spotify access tokens live for one hour
TOKEN_LIFETIME_SECONDS = 3600


@dataclass
class SessionContext:
    """
    Bearer token plus the metadata needed to judge its freshness.

    Mutable on purpose: invalidate() clears the token in place so every
    component holding the same context sees the logout.

    Attributes:
        access_token: OAuth bearer token, None once invalidated.
        issued_at: Unix timestamp (seconds) when the token was obtained.
        code_verifier: PKCE verifier used for the exchange, kept for
                       diagnostics and re-login.
        on_invalidate: Optional callback run after invalidate(), used by
                       SessionStore to delete the persisted file.
    """
    access_token: str | None
    issued_at: float
    code_verifier: str | None = None
    on_invalidate: Callable[[], None] | None = None

    def is_fresh(self, now: float | None = None) -> bool:
        """True while a token is present and younger than one hour."""
        if not self.access_token:
            return False
        current = time.time() if now is None else now
        return current - self.issued_at < TOKEN_LIFETIME_SECONDS

    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    def invalidate(self) -> None:
        """Discard the token. Subsequent requests fail with an authentication error."""
        self.access_token = None
        if self.on_invalidate is not None:
            self.on_invalidate()

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "issued_at": self.issued_at,
            "code_verifier": self.code_verifier,
        }


class SessionStore:
    """
    JSON file persistence for a SessionContext.

    The file is written with owner-only permissions where the platform
    supports it. Stale or malformed files are treated as absent.
    """

    REQUIRED_FIELDS = ("access_token", "issued_at")

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self, now: float | None = None) -> SessionContext | None:
        """
        Load the stored session if it exists and is still fresh.

        Returns:
            The session, bound to this store so invalidate() removes the
            file, or None when there is nothing usable.
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load stored session: {e}")
            return None

        if not isinstance(data, dict) or not all(data.get(k) for k in self.REQUIRED_FIELDS):
            logger.warning("Invalid session file structure, login required")
            return None

        try:
            issued_at = float(data["issued_at"])
        except (TypeError, ValueError):
            logger.warning("Invalid session timestamp, login required")
            return None

        session = SessionContext(
            access_token=str(data["access_token"]),
            issued_at=issued_at,
            code_verifier=data.get("code_verifier"),
            on_invalidate=self.clear,
        )

        if not session.is_fresh(now):
            logger.info("Stored session expired, login required")
            self.clear()
            return None

        return session

    def save(self, session: SessionContext) -> None:
        """Write the session to disk and bind it to this store."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(session.to_dict(), f, indent=2)

        try:
            self.path.chmod(0o600)
        except OSError:
            # Not supported on every platform
            pass

        session.on_invalidate = self.clear

    def clear(self) -> None:
        """Remove the stored session (logout)."""
        try:
            self.path.unlink()
            logger.debug(f"Removed session file {self.path}")
        except FileNotFoundError:
            pass
