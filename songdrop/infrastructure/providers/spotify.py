import logging
from typing import Any, Dict, List, Optional

import requests
import spotipy
from urllib3.exceptions import ReadTimeoutError

from songdrop.crosscutting.config import DEFAULT_TOKEN_URL
from songdrop.domain.entities import PlaylistPage, ResolvedPlaylist, ResolvedTrack, TokenGrant
from songdrop.domain.errors import TokenRefreshRejected, UpstreamError
from songdrop.domain.ports import MusicCatalog, TokenEndpoint

logger = logging.getLogger(__name__)


class SpotifyCatalog(MusicCatalog):
    """Spotify catalog session bound to a single access token.

    The spotipy client is built from a bare token, so it never refreshes on its own;
    refresh belongs to CredentialManager. spotipy's internal retries are disabled.
    """

    def __init__(self,
                 access_token: str,
                 requests_timeout: int = 15,
                 client: Optional[Any] = None):
        """Initialize Spotify catalog.

        Args:
            access_token: Valid Spotify access token
            requests_timeout: Per-request timeout in seconds
            client: Pre-built spotipy client, used by tests
        """
        self._client = client or spotipy.Spotify(
            auth=access_token,
            requests_timeout=requests_timeout,
            retries=0,
            status_retries=0,
        )

    def _upstream_error(self, error: Exception, operation: str) -> UpstreamError:
        status = getattr(error, 'http_status', None)
        if status is not None:
            logger.error(f"Spotify {operation} failed with HTTP {status}: {error}")
        else:
            logger.error(f"Spotify {operation} failed: {error}")
        return UpstreamError(f"Spotify {operation} failed: {error}")

    @staticmethod
    def _track_from_item(item: Dict[str, Any]) -> ResolvedTrack:
        """Convert a Spotify track object to a ResolvedTrack."""
        track_id = item.get('id') or ''
        artists = item.get('artists') or []
        return ResolvedTrack(
            id=track_id,
            uri=item.get('uri') or f"spotify:track:{track_id}",
            display_name=item.get('name', ''),
            artist_names=[a.get('name', '') for a in artists if a and a.get('name')],
        )

    def search_tracks(self, query: str, limit: int = 1) -> List[ResolvedTrack]:
        """Search restricted to the track category.

        Returns:
            Tracks in the order the service ranked them, at most limit
        """
        try:
            results = self._client.search(query, limit=limit, type='track')
        except (spotipy.SpotifyException, requests.RequestException, ReadTimeoutError) as e:
            raise self._upstream_error(e, 'search') from e

        items = ((results or {}).get('tracks') or {}).get('items') or []
        return [self._track_from_item(item) for item in items[:limit] if item]

    def list_playlists(self, limit: int, offset: int) -> PlaylistPage:
        """Return one page of the current user's playlists."""
        try:
            page = self._client.current_user_playlists(limit=limit, offset=offset)
        except (spotipy.SpotifyException, requests.RequestException, ReadTimeoutError) as e:
            raise self._upstream_error(e, 'playlist listing') from e

        page = page or {}
        items = [
            ResolvedPlaylist(id=p['id'], display_name=p.get('name') or '')
            for p in page.get('items') or []
            if p and p.get('id')
        ]
        return PlaylistPage(items=items, has_next=bool(page.get('next')))

    def add_item(self, playlist_id: str, track_uri: str) -> None:
        """Append one track. Single attempt."""
        try:
            self._client.playlist_add_items(playlist_id, [track_uri])
        except (spotipy.SpotifyException, requests.RequestException, ReadTimeoutError) as e:
            raise self._upstream_error(e, 'add to playlist') from e


class SpotifyTokenEndpoint(TokenEndpoint):
    """Client for the Spotify accounts token endpoint (refresh_token grant)."""

    def __init__(self,
                 client_id: str,
                 client_secret: str,
                 token_url: str = DEFAULT_TOKEN_URL,
                 timeout: int = 15,
                 session: Optional[requests.Session] = None):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.timeout = timeout
        self._session = session or requests.Session()

    def refresh(self, refresh_token: str) -> TokenGrant:
        """Exchange a refresh token for a new access token.

        Raises:
            TokenRefreshRejected: The endpoint answered with a non-2xx status
            UpstreamError: The endpoint could not be reached or answered garbage
        """
        data = {
            'grant_type': 'refresh_token',
            'refresh_token': refresh_token,
        }

        try:
            response = self._session.post(
                self.token_url,
                data=data,
                auth=(self.client_id, self.client_secret),
                headers={'Content-Type': 'application/x-www-form-urlencoded'},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Token endpoint unreachable: {e}")
            raise UpstreamError(f"Spotify token refresh failed: {e}") from e

        if not 200 <= response.status_code < 300:
            description = self._error_description(response)
            logger.error(f"Token refresh failed: {response.status_code} - {description}")
            raise TokenRefreshRejected(response.status_code, description)

        try:
            tokens = response.json()
            return TokenGrant(
                access_token=tokens['access_token'],
                expires_in=int(tokens.get('expires_in', 3600)),
                refresh_token=tokens.get('refresh_token') or None,
                token_type=tokens.get('token_type', 'Bearer'),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise UpstreamError(f"Spotify token refresh returned an invalid body: {e}") from e

    @staticmethod
    def _error_description(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict):
            return body.get('error_description') or body.get('error') or response.text
        return response.text
