from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass(frozen=True)
class Account:
    """Row of the account store bound to one opaque API key."""

    account_id: str
    access_token: str
    refresh_token: Optional[str]
    expires_at: int
    api_key: str


@dataclass(frozen=True)
class CredentialSet:
    """Live token triple used by a single request."""

    access_token: str
    refresh_token: Optional[str]
    expires_at: int

    @classmethod
    def from_account(cls, account: Account) -> "CredentialSet":
        return cls(
            access_token=account.access_token,
            refresh_token=account.refresh_token,
            expires_at=account.expires_at,
        )


@dataclass(frozen=True)
class TokenGrant:
    """Result of a successful refresh at the token endpoint."""

    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"


@dataclass(frozen=True)
class SongInfo:
    """Structured song query. Artists keep the order they appeared in the source text."""

    title: str
    artists: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.title:
            raise ValueError("SongInfo.title must be non-empty")
        object.__setattr__(self, 'artists', list(self.artists))

    @classmethod
    def raw(cls, query: str) -> "SongInfo":
        return cls(title=query, artists=[])

    def search_text(self) -> str:
        """Free-text catalog query: the title followed by every artist."""
        return " ".join([self.title] + [a for a in self.artists if a])


@dataclass(frozen=True)
class Normalized:
    """The language model produced a valid SongInfo."""

    song: SongInfo
    attempts: int = 1


@dataclass(frozen=True)
class Fallback:
    """Normalization was skipped or degraded; song is the raw query."""

    song: SongInfo
    reason: str = "disabled"
    attempts: int = 0


NormalizationResult = Union[Normalized, Fallback]


@dataclass(frozen=True)
class ResolvedTrack:
    """Read-only projection of a catalog search result."""

    id: str
    uri: str
    display_name: str
    artist_names: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ResolvedPlaylist:
    """Playlist owned by (or followed by) the requesting user."""

    id: str
    display_name: str


@dataclass(frozen=True)
class PlaylistPage:
    """One page of the current user's playlist listing."""

    items: List[ResolvedPlaylist]
    has_next: bool


@dataclass(frozen=True)
class AddOutcome:
    """Successful add of a track to a playlist."""

    track: ResolvedTrack
    playlist: ResolvedPlaylist
    normalization: NormalizationResult

    @property
    def message(self) -> str:
        artists = ", ".join(self.track.artist_names) or "Unknown artist"
        return (f'Successfully added "{self.track.display_name}" by {artists} '
                f'to "{self.playlist.display_name}".')
