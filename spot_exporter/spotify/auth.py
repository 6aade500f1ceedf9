"""
PKCE login against Spotify accounts.

spotipy's SpotifyPKCE performs the handshake: it generates the code
verifier and challenge, opens the browser on the authorization page,
catches the redirect on the local callback server and exchanges the
code for a token. This module only turns the result into a
SessionContext; everything else in the application works with that
context and never touches spotipy.
"""

import time

from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOauthError, SpotifyPKCE

from spot_exporter.core.exceptions import AuthenticationError
from spot_exporter.core.logger import get_logger
from spot_exporter.core.session import SessionContext

logger = get_logger(__name__)


SCOPES = "playlist-read-private playlist-read-collaborative user-library-read"


def create_auth_manager(client_id: str, redirect_uri: str, open_browser: bool = True) -> SpotifyPKCE:
    """
    Build the PKCE auth manager.

    The token cache lives in memory only; persistence is SessionStore's job.
    """
    return SpotifyPKCE(
        client_id=client_id,
        redirect_uri=redirect_uri,
        scope=SCOPES,
        cache_handler=MemoryCacheHandler(),
        open_browser=open_browser,
    )


def login(client_id: str, redirect_uri: str, auth_manager: SpotifyPKCE | None = None) -> SessionContext:
    """
    Run the interactive PKCE login and return a fresh session.

    Args:
        client_id: Spotify application client id.
        redirect_uri: Redirect URI registered for the application.
        auth_manager: Optional pre-built manager (tests).

    Raises:
        AuthenticationError: If the user denies access or the exchange fails.
    """
    manager = auth_manager or create_auth_manager(client_id, redirect_uri)

    logger.info("Opening Spotify login in your browser...")
    try:
        access_token = manager.get_access_token(check_cache=False)
    except SpotifyOauthError as e:
        raise AuthenticationError(
            f"Spotify login failed: {e}",
            details={"redirect_uri": redirect_uri, "original_error": str(e)},
        ) from e

    if not access_token:
        raise AuthenticationError(
            "Spotify login returned no access token",
            details={"redirect_uri": redirect_uri},
        )

    logger.info("Logged in to Spotify")
    return SessionContext(
        access_token=access_token,
        issued_at=time.time(),
        code_verifier=getattr(manager, "code_verifier", None),
    )
