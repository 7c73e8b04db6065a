from __future__ import annotations

from typing import List, Optional, Protocol

from .entities import Account, PlaylistPage, ResolvedTrack, TokenGrant


class AccountStore(Protocol):
    """Port for the persistent account store. The only state shared between requests."""

    def get_by_api_key(self, api_key: str) -> Optional[Account]:
        """Return the account bound to the API key, or None."""

    def get(self, account_id: str) -> Optional[Account]:
        """Return the account with the given identifier, or None."""

    def update_tokens(self, account_id: str, access_token: str, refresh_token: Optional[str],
                      expires_at: int, expected_expires_at: int) -> bool:
        """Atomically replace the token fields if expires_at still equals expected_expires_at.

        Returns False when a concurrent writer got there first.
        """


class TokenEndpoint(Protocol):
    """Port for the OAuth token endpoint."""

    def refresh(self, refresh_token: str) -> TokenGrant:
        """Exchange a refresh token for a new grant.

        Raises TokenRefreshRejected on a non-2xx answer, UpstreamError when unreachable.
        """


class MusicCatalog(Protocol):
    """Port for the music service, bound to one access token.

    Implementations must map provider failures into UpstreamError and must not refresh
    credentials on their own.
    """

    def search_tracks(self, query: str, limit: int = 1) -> List[ResolvedTrack]:
        """Search the catalog restricted to tracks."""

    def list_playlists(self, limit: int, offset: int) -> PlaylistPage:
        """Return one page of the current user's playlists."""

    def add_item(self, playlist_id: str, track_uri: str) -> None:
        """Append a single track to the playlist."""


class LanguageModel(Protocol):
    """Port for a structured-generation language model."""

    def generate_json(self, parts: List[str], schema: dict) -> Optional[str]:
        """Submit prompt parts and return the raw JSON text, or None if the model returned nothing."""
